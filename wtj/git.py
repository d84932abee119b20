"""Async handle over the local git repository."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

REMOTE = "origin"

# Unit/record separators keep commit subjects with tabs or pipes intact.
LOG_FORMAT = "%H%x1f%an%x1f%aI%x1f%s%x1e"


class GitCommandError(RuntimeError):
    def __init__(self, args: list[str], returncode: int | None, output: str) -> None:
        self.args_list = args
        self.returncode = returncode
        self.output = output
        super().__init__(f"git {' '.join(args)} failed: {output.strip() or f'exit {returncode}'}")


class Repository(ABC):
    """The git operations the pipeline needs, and nothing else."""

    @abstractmethod
    async def current_branch(self) -> str: ...

    @abstractmethod
    async def log(self, base_ref: str) -> str: ...

    @abstractmethod
    async def diff(self, base_ref: str) -> str: ...

    @abstractmethod
    async def diff_summary(self, base_ref: str) -> str: ...

    @abstractmethod
    async def create_branch(self, name: str) -> None: ...

    @abstractmethod
    async def push(self, branch: str, set_upstream: bool = False) -> None: ...

    @abstractmethod
    async def delete_branch(self, name: str) -> None: ...

    @abstractmethod
    async def delete_remote_branch(self, name: str) -> None: ...


class GitRepository(Repository):
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or Path.cwd()

    async def _run(self, *args: str) -> str:
        # quotePath=false keeps non-ASCII paths verbatim in numstat/summary output
        cmd = ["git", "-C", str(self.path), "-c", "core.quotePath=false", *args]
        logger.debug("$ {}", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise GitCommandError(list(args), None, str(exc)) from exc
        stdout, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise GitCommandError(list(args), proc.returncode, stderr.decode("utf-8", errors="replace"))
        return stdout.decode("utf-8", errors="replace")

    async def current_branch(self) -> str:
        # Prints "HEAD" when detached
        return (await self._run("rev-parse", "--abbrev-ref", "HEAD")).strip()

    async def log(self, base_ref: str) -> str:
        return await self._run("log", "--reverse", f"--format={LOG_FORMAT}", f"{base_ref}..HEAD")

    async def diff(self, base_ref: str) -> str:
        return await self._run("diff", f"{base_ref}..HEAD")

    async def diff_summary(self, base_ref: str) -> str:
        return await self._run("diff", "--numstat", "--summary", "--no-renames", f"{base_ref}..HEAD")

    async def create_branch(self, name: str) -> None:
        await self._run("checkout", "-b", name)

    async def push(self, branch: str, set_upstream: bool = False) -> None:
        if set_upstream:
            await self._run("push", "--set-upstream", REMOTE, branch)
        else:
            await self._run("push", REMOTE, branch)

    async def delete_branch(self, name: str) -> None:
        await self._run("branch", "-d", name)

    async def delete_remote_branch(self, name: str) -> None:
        await self._run("push", REMOTE, "--delete", name)
