"""Branch rewriting: rename the current branch to carry the new issue id."""

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger

from wtj.errors import BranchRewriteError
from wtj.git import GitCommandError, Repository
from wtj.result import Err, Ok, Result


def sanitize_branch_name(name: str) -> str:
    """Lowercase, collapse anything outside [a-z0-9-] into single hyphens, trim hyphens."""
    slug = re.sub(r"[^a-z0-9-]+", "-", name.lower())
    return re.sub(r"-{2,}", "-", slug).strip("-")


def branch_prefix(ref: int | str) -> str:
    return f"sc-{ref}" if isinstance(ref, int) else ref


def renamed_branch(current: str, ref: int | str) -> str:
    prefix = branch_prefix(ref)
    slug = sanitize_branch_name(current)
    return f"{prefix}-{slug}" if slug else prefix


@dataclass
class BestEffort:
    """Run cleanup steps whose failure must never fail the caller.

    Each failure is logged and recorded in ``failures``; ``attempt`` never raises.
    """

    failures: list[str] = field(default_factory=list)

    async def attempt(self, description: str, operation: Callable[[], Awaitable[object]]) -> bool:
        try:
            await operation()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not {}: {}", description, exc)
            self.failures.append(description)
            return False
        return True


async def rewrite_branch(
    repository: Repository,
    current: str,
    ref: int | str,
    cleanup: BestEffort | None = None,
) -> Result[str, BranchRewriteError]:
    cleanup = cleanup or BestEffort()
    new_name = renamed_branch(current, ref)

    try:
        await repository.create_branch(new_name)
    except GitCommandError as exc:
        return Err(BranchRewriteError(f"Could not create branch {new_name}: {exc}"))

    try:
        await repository.push(new_name, set_upstream=True)
    except GitCommandError as exc:
        return Err(BranchRewriteError(f"Created {new_name} locally but could not push it: {exc}"))

    await cleanup.attempt(f"delete local branch {current}", lambda: repository.delete_branch(current))
    await cleanup.attempt(f"delete remote branch {current}", lambda: repository.delete_remote_branch(current))

    return Ok(new_name)
