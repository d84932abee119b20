"""Shortcut REST API v3 provider."""

from wtj.errors import TrackerApiError
from wtj.models import CreatedIssue, Project, WorkItemDraft
from wtj.providers.base import TrackerProvider
from wtj.result import Result
from wtj.settings import ShortcutConfig

BASE_URL = "https://api.app.shortcut.com/api/v3"


class ShortcutProvider(TrackerProvider):
    name = "Shortcut"

    def __init__(self, config: ShortcutConfig) -> None:
        if not config.token:
            raise ValueError("Shortcut token is required")
        self._config = config
        self._headers = {
            "Shortcut-Token": config.token.get_secret_value(),
            "Content-Type": "application/json",
        }

    def story_request(self, draft: WorkItemDraft) -> dict:
        # Shortcut's story_type vocabulary is exactly feature/bug/chore
        body: dict = {
            "name": draft.title,
            "description": draft.description,
            "story_type": draft.kind,
            "estimate": draft.point_estimate,
            "labels": [{"name": label} for label in draft.labels],
        }
        if self._config.project_id is not None:
            body["project_id"] = self._config.project_id
        if self._config.iteration_id is not None:
            body["iteration_id"] = self._config.iteration_id
        if self._config.owner_id:
            body["owner_ids"] = [self._config.owner_id]
        return body

    async def create_issue(self, draft: WorkItemDraft) -> Result[CreatedIssue, TrackerApiError]:
        response = await self._request("POST", f"{BASE_URL}/stories", self.story_request(draft))
        return self._normalize(
            response,
            lambda node: CreatedIssue(
                id=int(node["id"]),
                url=node["app_url"],
                display_key=node["name"],
                kind=node.get("story_type", draft.kind),
                tracker="shortcut",
            ),
        )

    async def validate_auth(self) -> Result[str, TrackerApiError]:
        response = await self._request("GET", f"{BASE_URL}/member")
        return self._normalize(response, lambda member: member.get("name") or member["id"])

    async def list_projects(self) -> Result[list[Project], TrackerApiError]:
        response = await self._request("GET", f"{BASE_URL}/projects")
        return self._normalize(
            response,
            lambda nodes: [
                Project(id=str(n["id"]), key=str(n["id"]), name=n["name"], tracker="shortcut") for n in nodes
            ],
        )
