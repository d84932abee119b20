"""Tracker dispatch: one TrackerConfig variant in, one provider out."""

from typing import assert_never

from wtj.errors import ConfigurationError, WtjError
from wtj.models import CreatedIssue, WorkItemDraft
from wtj.providers.base import TrackerProvider
from wtj.providers.jira import JiraProvider
from wtj.providers.shortcut import ShortcutProvider
from wtj.result import Err, Ok, Result
from wtj.settings import JiraConfig, ShortcutConfig, TrackerConfig


def get_provider(config: TrackerConfig) -> Result[TrackerProvider, ConfigurationError]:
    """Build the provider for the configured tracker, before any network call."""
    missing = config.missing_fields()
    if missing:
        return Err(ConfigurationError(f"{config.kind} configuration is missing: {', '.join(missing)}"))
    match config:
        case ShortcutConfig():
            return Ok(ShortcutProvider(config))
        case JiraConfig():
            return Ok(JiraProvider(config))
        case _:
            assert_never(config)


def tracker_label(config: TrackerConfig) -> str:
    match config:
        case ShortcutConfig():
            return "Shortcut story"
        case JiraConfig():
            return "Jira issue"
        case _:
            assert_never(config)


async def create_issue(draft: WorkItemDraft, config: TrackerConfig) -> Result[CreatedIssue, WtjError]:
    return await get_provider(config).and_then_async(lambda provider: provider.create_issue(draft))
