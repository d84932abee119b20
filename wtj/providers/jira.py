"""Jira Cloud REST API v3 provider."""

from loguru import logger

from wtj.errors import TrackerApiError
from wtj.models import CreatedIssue, Project, WorkItemDraft
from wtj.providers.base import TrackerProvider
from wtj.result import Err, Ok, Result
from wtj.settings import JiraConfig

ISSUE_TYPES = {
    "feature": "Story",
    "bug": "Bug",
    "chore": "Task",
}


def issue_type_for(kind: str) -> str:
    return ISSUE_TYPES.get(kind, "Task")


def adf_document(text: str) -> dict:
    """Wrap plain text in a minimal Atlassian Document Format document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


class JiraProvider(TrackerProvider):
    name = "Jira"

    def __init__(self, config: JiraConfig) -> None:
        missing = config.missing_fields()
        if missing:
            raise ValueError(f"Jira settings missing: {', '.join(missing)}")
        self._config = config
        self._base_url = config.base_url
        self._auth = (config.email, config.api_token.get_secret_value())  # type: ignore[union-attr]
        self._headers = {"Accept": "application/json", "Content-Type": "application/json"}

    def issue_request(self, draft: WorkItemDraft) -> dict:
        fields: dict = {
            "project": {"key": self._config.project_key},
            "summary": draft.title,
            "description": adf_document(draft.description),
            "issuetype": {"name": issue_type_for(draft.kind)},
            "labels": list(draft.labels),
        }
        if self._config.assignee_id:
            fields["assignee"] = {"id": self._config.assignee_id}
        return {"fields": fields}

    def browse_url(self, key: str) -> str:
        return f"{self._base_url}/browse/{key}"

    async def add_to_sprint(self, issue_key: str, sprint_id: int) -> Result[None, TrackerApiError]:
        response = await self._request(
            "POST",
            f"{self._base_url}/rest/agile/1.0/sprint/{sprint_id}/issue",
            {"issues": [issue_key]},
        )
        return response.map(lambda _: None)

    async def create_issue(self, draft: WorkItemDraft) -> Result[CreatedIssue, TrackerApiError]:
        response = await self._request("POST", f"{self._base_url}/rest/api/3/issue", self.issue_request(draft))
        match self._normalize(response, lambda node: (str(node["id"]), str(node["key"]))):
            case Err() as err:
                return err
            case Ok((issue_id, key)):
                pass

        sprint_id = self._config.sprint_id
        if sprint_id is not None:
            sprint = await self.add_to_sprint(key, sprint_id)
            if isinstance(sprint, Err):
                logger.warning("Failed to add {} to sprint {}: {}", key, sprint_id, sprint.error.message)

        return Ok(
            CreatedIssue(
                id=issue_id,
                url=self.browse_url(key),
                display_key=key,
                kind=draft.kind,
                tracker="jira",
            )
        )

    async def validate_auth(self) -> Result[str, TrackerApiError]:
        response = await self._request("GET", f"{self._base_url}/rest/api/3/myself")
        return self._normalize(response, lambda user: user.get("displayName") or user["accountId"])

    async def list_projects(self) -> Result[list[Project], TrackerApiError]:
        response = await self._request("GET", f"{self._base_url}/rest/api/3/project")
        return self._normalize(
            response,
            lambda nodes: [Project(id=str(n["id"]), key=n["key"], name=n["name"], tracker="jira") for n in nodes],
        )
