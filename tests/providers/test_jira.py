"""Tests for JiraProvider using pytest-httpx."""

import base64
import json

import pytest
from pydantic import SecretStr
from pytest_httpx import HTTPXMock

from wtj.models import WorkItemDraft
from wtj.providers.jira import ISSUE_TYPES, JiraProvider, adf_document, issue_type_for
from wtj.result import Err, Ok
from wtj.settings import JiraConfig

BASE = "https://acme.atlassian.net"
ISSUE_URL = f"{BASE}/rest/api/3/issue"

_ISSUE_NODE = {"id": "10001", "key": "PROJ-123", "self": f"{ISSUE_URL}/10001"}


def _config(**kwargs) -> JiraConfig:
    defaults = {
        "base_url": BASE,
        "email": "dev@acme.io",
        "api_token": SecretStr("jira-token"),
        "project_key": "PROJ",
    }
    defaults.update(kwargs)
    return JiraConfig(**defaults)


class TestIssueTypes:
    @pytest.mark.parametrize(("kind", "issue_type"), [("feature", "Story"), ("bug", "Bug"), ("chore", "Task")])
    def test_known_kinds(self, kind: str, issue_type: str) -> None:
        assert issue_type_for(kind) == issue_type

    def test_unknown_kind_defaults_to_task(self) -> None:
        assert issue_type_for("epic") == "Task"

    def test_every_kind_is_mapped(self) -> None:
        assert set(ISSUE_TYPES) == {"feature", "bug", "chore"}


class TestIssueRequest:
    def test_fields(self, draft: WorkItemDraft) -> None:
        fields = JiraProvider(_config()).issue_request(draft)["fields"]
        assert fields["project"] == {"key": "PROJ"}
        assert fields["summary"] == "Add login page"
        assert fields["issuetype"] == {"name": "Story"}
        assert fields["labels"] == ["frontend", "backend"]
        assert fields["description"] == adf_document(draft.description)
        assert "assignee" not in fields

    def test_assignee(self, draft: WorkItemDraft) -> None:
        fields = JiraProvider(_config(assignee_id="acc-1")).issue_request(draft)["fields"]
        assert fields["assignee"] == {"id": "acc-1"}

    def test_adf_document_shape(self) -> None:
        doc = adf_document("hello")
        assert doc["type"] == "doc"
        assert doc["version"] == 1
        assert doc["content"][0]["content"][0] == {"type": "text", "text": "hello"}

    def test_missing_fields_rejected(self) -> None:
        with pytest.raises(ValueError, match="email"):
            JiraProvider(_config(email=None))

    def test_trailing_slash_stripped(self) -> None:
        provider = JiraProvider(_config(base_url=f"{BASE}/"))
        assert provider.browse_url("PROJ-1") == f"{BASE}/browse/PROJ-1"


class TestCreateIssue:
    @pytest.mark.asyncio
    async def test_success(self, httpx_mock: HTTPXMock, draft: WorkItemDraft) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, json=_ISSUE_NODE, status_code=201)
        result = await JiraProvider(_config()).create_issue(draft)

        assert isinstance(result, Ok)
        issue = result.value
        assert issue.id == "10001"
        assert issue.display_key == "PROJ-123"
        assert issue.url == f"{BASE}/browse/PROJ-123"
        assert issue.branch_ref == "PROJ-123"

        request = httpx_mock.get_request()
        assert request is not None
        expected = base64.b64encode(b"dev@acme.io:jira-token").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert json.loads(request.content)["fields"]["summary"] == "Add login page"

    @pytest.mark.asyncio
    async def test_adds_to_sprint(self, httpx_mock: HTTPXMock, draft: WorkItemDraft) -> None:
        sprint_url = f"{BASE}/rest/agile/1.0/sprint/5/issue"
        httpx_mock.add_response(method="POST", url=ISSUE_URL, json=_ISSUE_NODE, status_code=201)
        httpx_mock.add_response(method="POST", url=sprint_url, status_code=204)

        result = await JiraProvider(_config(sprint_id=5)).create_issue(draft)

        assert isinstance(result, Ok)
        sprint_request = httpx_mock.get_request(url=sprint_url)
        assert sprint_request is not None
        assert json.loads(sprint_request.content) == {"issues": ["PROJ-123"]}

    @pytest.mark.asyncio
    async def test_sprint_failure_still_succeeds(
        self, httpx_mock: HTTPXMock, draft: WorkItemDraft, log_messages: list[str]
    ) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, json=_ISSUE_NODE, status_code=201)
        httpx_mock.add_response(method="POST", url=f"{BASE}/rest/agile/1.0/sprint/5/issue", status_code=404)

        result = await JiraProvider(_config(sprint_id=5)).create_issue(draft)

        assert isinstance(result, Ok)
        assert result.value.display_key == "PROJ-123"
        assert any("Failed to add PROJ-123 to sprint 5" in m for m in log_messages)

    @pytest.mark.asyncio
    async def test_http_error(self, httpx_mock: HTTPXMock, draft: WorkItemDraft) -> None:
        httpx_mock.add_response(method="POST", url=ISSUE_URL, status_code=400, text='{"errors":{"summary":"x"}}')
        result = await JiraProvider(_config(sprint_id=5)).create_issue(draft)

        assert isinstance(result, Err)
        assert result.error.status == 400
        assert "Jira API error (HTTP 400)" in result.error.message
        # no sprint call after a failed create
        assert len(httpx_mock.get_requests()) == 1


class TestValidateAuth:
    @pytest.mark.asyncio
    async def test_display_name(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/rest/api/3/myself", json={"accountId": "acc-1", "displayName": "Jane"})
        assert await JiraProvider(_config()).validate_auth() == Ok("Jane")

    @pytest.mark.asyncio
    async def test_falls_back_to_account_id(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=f"{BASE}/rest/api/3/myself", json={"accountId": "acc-1"})
        assert await JiraProvider(_config()).validate_auth() == Ok("acc-1")


class TestListProjects:
    @pytest.mark.asyncio
    async def test_maps_projects(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=f"{BASE}/rest/api/3/project",
            json=[{"id": "10000", "key": "PROJ", "name": "Project"}],
        )
        result = await JiraProvider(_config()).list_projects()

        assert isinstance(result, Ok)
        project = result.value[0]
        assert (project.id, project.key, project.name, project.tracker) == ("10000", "PROJ", "Project", "jira")
