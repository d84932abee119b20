"""Shared pydantic models: the contract between pipeline stages."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

WorkItemKind = Literal["feature", "bug", "chore"]
PointEstimate = Literal[1, 2, 3, 5, 8]
FileStatus = Literal["added", "modified", "deleted", "renamed"]
TrackerKind = Literal["shortcut", "jira"]

TITLE_MAX_LEN = 100


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str  # 7-char abbreviation
    message: str  # subject line
    author: str
    timestamp: datetime


class FileDelta(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    insertions: int = 0
    deletions: int = 0
    status: FileStatus = "modified"


class ChangeSet(BaseModel):
    """Commits and file deltas between origin/<base> and HEAD."""

    model_config = ConfigDict(frozen=True)

    current_branch: str
    commits: list[Commit] = Field(min_length=1)  # oldest first
    file_deltas: list[FileDelta] = []
    total_insertions: int = 0
    total_deletions: int = 0
    diff_text: str = ""


class WorkItemDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=TITLE_MAX_LEN)
    description: str
    kind: WorkItemKind
    point_estimate: PointEstimate
    labels: list[str] = []
    confidence: float = Field(ge=0.0, le=1.0)
    provenance: Literal["generated", "fallback"] = "generated"


class CreatedIssue(BaseModel):
    """Tracker-agnostic record of a created story or issue."""

    model_config = ConfigDict(frozen=True)

    id: int | str  # Shortcut story id or Jira issue id
    url: str
    display_key: str  # Shortcut story name or Jira issue key
    kind: str
    tracker: TrackerKind

    @property
    def branch_ref(self) -> int | str:
        # Shortcut branches get sc-<id>; Jira branches get the issue key itself
        return self.id if self.tracker == "shortcut" else self.display_key


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str
    tracker: TrackerKind


class PipelineReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    change_set: ChangeSet
    draft: WorkItemDraft
    issue: CreatedIssue
    branch: str
