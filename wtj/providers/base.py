"""Abstract base class for tracker providers."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from loguru import logger

from wtj.errors import TrackerApiError
from wtj.models import CreatedIssue, Project, WorkItemDraft
from wtj.result import Err, Ok, Result

T = TypeVar("T")


class TrackerProvider(ABC):
    name: str = "tracker"

    _headers: dict[str, str] = {}
    _auth: httpx.Auth | tuple[str, str] | None = None

    @abstractmethod
    async def create_issue(self, draft: WorkItemDraft) -> Result[CreatedIssue, TrackerApiError]: ...

    @abstractmethod
    async def validate_auth(self) -> Result[str, TrackerApiError]:
        """Return the authenticated user's display name."""

    @abstractmethod
    async def list_projects(self) -> Result[list[Project], TrackerApiError]: ...

    async def _request(self, method: str, url: str, body: dict | None = None) -> Result[Any, TrackerApiError]:
        """Send one request; any non-2xx or transport failure becomes TrackerApiError."""
        logger.debug("{} {}", method, url)
        try:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.request(method, url, json=body, headers=self._headers, auth=self._auth)
        except httpx.HTTPError as exc:
            return Err(TrackerApiError(self.name, None, repr(exc)))
        if response.is_error:
            return Err(TrackerApiError(self.name, response.status_code, response.text))
        if not response.content:
            return Ok(None)
        try:
            return Ok(response.json())
        except ValueError:
            return Err(TrackerApiError(self.name, response.status_code, f"non-JSON response: {response.text[:200]}"))

    def _normalize(self, result: Result[Any, TrackerApiError], fn: Callable[[Any], T]) -> Result[T, TrackerApiError]:
        """Map a response payload, turning an unexpected shape into TrackerApiError."""
        if isinstance(result, Err):
            return result
        try:
            return Ok(fn(result.value))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            return Err(TrackerApiError(self.name, None, f"unexpected response: {exc!r}"))
