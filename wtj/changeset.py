"""Change-set extraction: what does this branch contain relative to its base?"""

import asyncio
import re
from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from wtj.errors import IneligibleBranchError, NoChangesError, RepositoryError, WtjError
from wtj.git import REMOTE, GitCommandError, Repository
from wtj.models import ChangeSet, Commit, FileDelta, FileStatus
from wtj.result import Err, Ok, Result
from wtj.settings import GitSettings

DIFF_CHAR_LIMIT = 8000

# Branches that already carry a tracker id: sc-123-... (Shortcut) or PROJ-123-... (Jira)
_SHORTCUT_PREFIX = re.compile(r"^sc-\d+")
_TRACKER_KEY_PREFIX = re.compile(r"^[A-Z]+-\d+")


def ineligibility_reason(branch: str, skip_branches: Iterable[str]) -> str | None:
    if _SHORTCUT_PREFIX.match(branch):
        return "already has a Shortcut story id"
    if _TRACKER_KEY_PREFIX.match(branch):
        return "already has an issue key"
    if branch in set(skip_branches):
        return "listed in skip_branches"
    return None


def is_eligible(branch: str, skip_branches: Iterable[str]) -> bool:
    return ineligibility_reason(branch, skip_branches) is None


def parse_log(text: str) -> list[Commit]:
    """Parse ``git log --format=LOG_FORMAT`` output, preserving order."""
    commits = []
    for record in text.split("\x1e"):
        record = record.strip("\n")
        if not record:
            continue
        full_hash, author, date, message = record.split("\x1f", 3)
        commits.append(
            Commit(
                hash=full_hash[:7],
                message=message,
                author=author,
                timestamp=datetime.fromisoformat(date),
            )
        )
    return commits


def _summary_path(line: str) -> str:
    # " create mode 100644 path/with spaces.py" -> "path/with spaces.py"
    return line.strip().split(" ", 3)[3]


def parse_diff_summary(text: str) -> list[FileDelta]:
    """Parse ``git diff --numstat --summary`` into per-file deltas.

    Binary files report ``-`` for both counts and are recorded as 0/0.
    """
    counts: dict[str, tuple[int, int]] = {}
    statuses: dict[str, FileStatus] = {}
    for line in text.splitlines():
        if "\t" in line:
            added, deleted, path = line.split("\t", 2)
            counts[path] = (
                int(added) if added.isdigit() else 0,
                int(deleted) if deleted.isdigit() else 0,
            )
        elif line.startswith(" create mode "):
            statuses[_summary_path(line)] = "added"
        elif line.startswith(" delete mode "):
            statuses[_summary_path(line)] = "deleted"
    return [
        FileDelta(path=path, insertions=ins, deletions=dels, status=statuses.get(path, "modified"))
        for path, (ins, dels) in counts.items()
    ]


async def extract_change_set(repository: Repository, settings: GitSettings) -> Result[ChangeSet, WtjError]:
    try:
        branch = await repository.current_branch()
    except GitCommandError as exc:
        return Err(RepositoryError(f"Could not read the current branch (not a git repository?): {exc}"))
    if branch == "HEAD":
        return Err(RepositoryError("HEAD is detached; check out a branch first"))

    reason = ineligibility_reason(branch, settings.skip_branches)
    if reason:
        return Err(IneligibleBranchError(branch, reason))

    base_ref = f"{REMOTE}/{settings.base_branch}"
    try:
        log_text, diff_text, summary_text = await asyncio.gather(
            repository.log(base_ref),
            repository.diff(base_ref),
            repository.diff_summary(base_ref),
        )
    except GitCommandError as exc:
        return Err(RepositoryError(f"Could not compare {branch} with {base_ref}: {exc}"))

    try:
        commits = parse_log(log_text)
        deltas = parse_diff_summary(summary_text)
    except ValueError as exc:
        return Err(RepositoryError(f"Unexpected git output: {exc}"))

    if not commits:
        return Err(NoChangesError(branch, base_ref))

    logger.debug("{}: {} commit(s), {} file(s) since {}", branch, len(commits), len(deltas), base_ref)
    return Ok(
        ChangeSet(
            current_branch=branch,
            commits=commits,
            file_deltas=deltas,
            total_insertions=sum(d.insertions for d in deltas),
            total_deletions=sum(d.deletions for d in deltas),
            diff_text=diff_text[:DIFF_CHAR_LIMIT],
        )
    )
