"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest
from loguru import logger
from pydantic import SecretStr

from wtj.models import ChangeSet, Commit, CreatedIssue, FileDelta, WorkItemDraft
from wtj.settings import AiSettings, GitSettings, JiraConfig, ShortcutConfig, WtjSettings

COMMIT_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def log_messages():
    """Collect loguru output for assertions."""
    messages: list[str] = []
    handler_id = logger.add(lambda msg: messages.append(msg.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def change_set() -> ChangeSet:
    return ChangeSet(
        current_branch="add-login-page",
        commits=[
            Commit(hash="1a2b3c4", message="Add login form", author="Jane Doe", timestamp=COMMIT_TIME),
            Commit(hash="5d6e7f8", message="Wire login API", author="Jane Doe", timestamp=COMMIT_TIME),
        ],
        file_deltas=[
            FileDelta(path="web/LoginPage.tsx", insertions=80, deletions=0, status="added"),
            FileDelta(path="server/api/auth.py", insertions=20, deletions=4),
        ],
        total_insertions=100,
        total_deletions=4,
        diff_text="diff --git a/web/LoginPage.tsx b/web/LoginPage.tsx\n",
    )


@pytest.fixture
def draft() -> WorkItemDraft:
    return WorkItemDraft(
        title="Add login page",
        description="Adds a login form and wires it to the auth API.",
        kind="feature",
        point_estimate=3,
        labels=["frontend", "backend"],
        confidence=0.85,
    )


@pytest.fixture
def shortcut_config() -> ShortcutConfig:
    return ShortcutConfig(token=SecretStr("sc-token-123"), project_id=7)


@pytest.fixture
def jira_config() -> JiraConfig:
    return JiraConfig(
        base_url="https://acme.atlassian.net",
        email="dev@acme.io",
        api_token=SecretStr("jira-token"),
        project_key="PROJ",
    )


@pytest.fixture
def shortcut_settings(shortcut_config: ShortcutConfig) -> WtjSettings:
    return WtjSettings(
        tracker=shortcut_config,
        ai=AiSettings(token=SecretStr("sk-test")),
        git=GitSettings(base_branch="main"),
    )


@pytest.fixture
def shortcut_issue() -> CreatedIssue:
    return CreatedIssue(
        id=42,
        url="https://app.shortcut.com/acme/story/42",
        display_key="Add login page",
        kind="feature",
        tracker="shortcut",
    )
