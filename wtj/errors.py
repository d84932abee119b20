"""Error catalog carried inside ``Err`` values.

Every error has a ``kind`` and a human message. Lower layers (subprocess,
httpx, JSON parsing) are translated into one of these before leaving the
component that saw them.
"""

from typing import ClassVar


class WtjError(Exception):
    """Base error: a kind plus a message."""

    kind: ClassVar[str] = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def is_skip(self) -> bool:
        return False


class ConfigurationError(WtjError):
    kind = "configuration"


class RepositoryError(WtjError):
    kind = "repository"


class SkipCondition(WtjError):
    """Not a failure: the pipeline decided there is nothing to do."""

    kind = "skip"

    @property
    def is_skip(self) -> bool:
        return True


class IneligibleBranchError(SkipCondition):
    kind = "ineligible_branch"

    def __init__(self, branch: str, reason: str) -> None:
        self.branch = branch
        self.reason = reason
        super().__init__(f"Branch {branch} should be skipped: {reason}")


class NoChangesError(SkipCondition):
    kind = "no_changes"

    def __init__(self, branch: str, base_ref: str) -> None:
        self.branch = branch
        self.base_ref = base_ref
        super().__init__(f"No commits found on {branch} since {base_ref}")


class GenerationError(WtjError):
    kind = "generation"


class TrackerApiError(WtjError):
    kind = "tracker_api"

    def __init__(self, tracker: str, status: int | None, body: str) -> None:
        self.tracker = tracker
        self.status = status
        self.body = body
        where = f"HTTP {status}" if status is not None else "request failed"
        super().__init__(f"{tracker} API error ({where}): {body}")


class BranchRewriteError(WtjError):
    kind = "branch_rewrite"
