"""Test doubles shared across test modules."""

from wtj.git import GitCommandError, Repository


def make_log(*messages: str, author: str = "Jane Doe") -> str:
    """Render git log output in wtj.git.LOG_FORMAT."""
    records = []
    for i, message in enumerate(messages):
        full_hash = f"{i + 1:07d}" + "a" * 33
        records.append(f"{full_hash}\x1f{author}\x1f2024-05-01T12:{i:02d}:00+00:00\x1f{message}\x1e\n")
    return "".join(records)


class FakeRepository(Repository):
    """In-memory Repository recording every call after the branch lookup."""

    def __init__(
        self,
        branch: str = "add-login-page",
        log_text: str = "",
        diff_text: str = "diff --git a/x b/x\n",
        summary_text: str = "",
        fail: set[str] | None = None,
    ) -> None:
        self.branch = branch
        self.log_text = log_text
        self.diff_text = diff_text
        self.summary_text = summary_text
        self.fail = fail or set()
        self.calls: list[tuple[str, ...]] = []

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise GitCommandError([op], 1, f"{op} refused")

    async def current_branch(self) -> str:
        self._maybe_fail("current_branch")
        return self.branch

    async def log(self, base_ref: str) -> str:
        self.calls.append(("log", base_ref))
        self._maybe_fail("log")
        return self.log_text

    async def diff(self, base_ref: str) -> str:
        self.calls.append(("diff", base_ref))
        self._maybe_fail("diff")
        return self.diff_text

    async def diff_summary(self, base_ref: str) -> str:
        self.calls.append(("diff_summary", base_ref))
        self._maybe_fail("diff_summary")
        return self.summary_text

    async def create_branch(self, name: str) -> None:
        self.calls.append(("create_branch", name))
        self._maybe_fail("create_branch")
        self.branch = name

    async def push(self, branch: str, set_upstream: bool = False) -> None:
        self.calls.append(("push", branch, str(set_upstream)))
        self._maybe_fail("push")

    async def delete_branch(self, name: str) -> None:
        self.calls.append(("delete_branch", name))
        self._maybe_fail("delete_branch")

    async def delete_remote_branch(self, name: str) -> None:
        self.calls.append(("delete_remote_branch", name))
        self._maybe_fail("delete_remote_branch")
