"""Narrative synthesis: ChangeSet -> WorkItemDraft.

The generative path asks an OpenAI-compatible chat endpoint for a JSON draft.
Anything that goes wrong on that path (no token, transport error, non-JSON or
invalid response) degrades to ``fallback_draft``, so ``synthesize`` always
returns ``Ok``.
"""

import json
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator

from wtj.errors import GenerationError, WtjError
from wtj.models import TITLE_MAX_LEN, ChangeSet, WorkItemDraft
from wtj.result import Err, Ok, Result
from wtj.settings import AiSettings

SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes git commits and code changes to create "
    "issue tracker stories. Always respond with valid JSON."
)

FALLBACK_CONFIDENCE = 0.3

_UI_SUFFIXES = (".tsx", ".jsx", ".vue")
_VALID_POINTS = {1, 2, 3, 5, 8}


def truncate(text: str, max_len: int = TITLE_MAX_LEN) -> str:
    return text if len(text) <= max_len else f"{text[: max_len - 3]}..."


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def build_prompt(change_set: ChangeSet) -> str:
    commit_lines = "\n".join(f"{c.hash}: {c.message}" for c in change_set.commits)
    file_lines = "\n".join(
        f"{f.status}: {f.path} (+{f.insertions}/-{f.deletions})" for f in change_set.file_deltas
    )
    return f"""
Analyze these git changes and create a story. Respond with JSON only.

BRANCH: {change_set.current_branch}

COMMITS ({len(change_set.commits)}):
{commit_lines}

FILES CHANGED ({len(change_set.file_deltas)}):
{file_lines}

TOTAL CHANGES: +{change_set.total_insertions}/-{change_set.total_deletions}

CODE DIFF (truncated):
{change_set.diff_text}

Respond with a JSON object in this exact format:
{{
  "title": "Brief, descriptive title (max 100 chars)",
  "description": "Detailed description of what was done/needs to be done",
  "storyType": "feature|bug|chore",
  "estimatedPoints": 1|2|3|5|8,
  "suggestedLabels": ["label1", "label2"],
  "confidence": 0.85
}}

Guidelines:
- Title should be clear and actionable
- Description should explain the context and changes
- Choose storyType from the nature of the changes:
  - "feature" for new functionality
  - "bug" for fixes
  - "chore" for maintenance/refactoring
- Estimate points by complexity (1=trivial, 8=very complex)
- Add relevant labels like "frontend", "backend", "api"
- Confidence reflects how certain you are about the analysis (0-1)
"""


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class _GeneratedDraft(BaseModel):
    title: str
    description: str
    storyType: str
    estimatedPoints: int
    suggestedLabels: list[str] = []
    confidence: float | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _non_empty(cls, value: Any) -> Any:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("storyType")
    @classmethod
    def _known_kind(cls, value: str) -> str:
        if value not in ("feature", "bug", "chore"):
            raise ValueError(f"invalid story type {value!r}")
        return value

    @field_validator("estimatedPoints", mode="before")
    @classmethod
    def _fibonacci(cls, value: Any) -> int:
        # 3 and 3.0 are the same estimate; strings and booleans are not
        if isinstance(value, bool) or not isinstance(value, int | float) or value not in _VALID_POINTS:
            raise ValueError(f"invalid estimated points {value!r}")
        return int(value)

    @field_validator("suggestedLabels", mode="before")
    @classmethod
    def _labels(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [label for label in value if isinstance(label, str) and label.strip()]

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
        return float(value)


def parse_draft(text: str) -> Result[WorkItemDraft, GenerationError]:
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        return Err(GenerationError(f"response is not JSON: {exc}"))
    if not isinstance(payload, dict):
        return Err(GenerationError("response is not a JSON object"))

    try:
        generated = _GeneratedDraft.model_validate(payload)
    except ValidationError as exc:
        return Err(GenerationError(f"response failed validation: {exc.error_count()} error(s): {exc}"))

    # 0 and missing both count as "no opinion"
    confidence = generated.confidence or 0.5
    return Ok(
        WorkItemDraft(
            title=truncate(generated.title),
            description=generated.description,
            kind=generated.storyType,  # type: ignore[arg-type]
            point_estimate=generated.estimatedPoints,  # type: ignore[arg-type]
            labels=list(dict.fromkeys(generated.suggestedLabels)),
            confidence=max(0.0, min(1.0, confidence)),
            provenance="generated",
        )
    )


# ---------------------------------------------------------------------------
# Rule-based fallback
# ---------------------------------------------------------------------------


def fallback_draft(change_set: ChangeSet) -> WorkItemDraft:
    """Deterministic draft derived only from the change set."""
    paths = [f.path for f in change_set.file_deltas]
    file_count = len(paths)

    is_bug_fix = any("fix" in c.message.lower() for c in change_set.commits)
    points = 5 if file_count > 10 else 3 if file_count > 5 else 1

    labels = []
    if any(p.lower().endswith(_UI_SUFFIXES) for p in paths):
        labels.append("frontend")
    if any("api" in p or "controller" in p for p in paths):
        labels.append("backend")
    if any("test" in p or "spec" in p for p in paths):
        labels.append("testing")

    branch = change_set.current_branch
    files = "\n".join(f"- {p}" for p in paths) or "- (none)"
    commits = "\n".join(f"- {c.hash}: {c.message}" for c in change_set.commits)
    description = f"Changes made in branch {branch}\n\nFiles changed:\n{files}\n\nCommits:\n{commits}"

    return WorkItemDraft(
        title=truncate(f"Work on {branch}"),
        description=description,
        kind="bug" if is_bug_fix else "feature",
        point_estimate=points,
        labels=labels,
        confidence=FALLBACK_CONFIDENCE,
        provenance="fallback",
    )


# ---------------------------------------------------------------------------
# Generation client
# ---------------------------------------------------------------------------


class CompletionClient:
    """Minimal OpenAI-compatible chat completions client."""

    def __init__(self, settings: AiSettings) -> None:
        if not settings.token:
            raise ValueError("AI token is required")
        self._model = settings.model
        self._endpoint = f"{settings.base_url.rstrip('/')}/chat/completions"
        self._headers = {
            "Authorization": f"Bearer {settings.token.get_secret_value()}",
            "Content-Type": "application/json",
        }

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def complete(self, prompt: str) -> Result[str, GenerationError]:
        body = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.3,
            "max_tokens": 1000,
        }
        logger.debug("POST {} ({})", self._endpoint, self._model)
        try:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.post(self._endpoint, json=body, headers=self._headers)
        except httpx.HTTPError as exc:
            return Err(GenerationError(f"generation request failed: {exc!r}"))
        if response.is_error:
            return Err(GenerationError(f"generation service returned HTTP {response.status_code}: {response.text}"))

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            return Err(GenerationError(f"unexpected generation response shape: {exc!r}"))
        if not content:
            return Err(GenerationError("generation service returned an empty message"))
        if not isinstance(content, str):
            return Err(GenerationError(f"generation service returned non-text content: {type(content).__name__}"))
        return Ok(content)


async def synthesize(change_set: ChangeSet, client: CompletionClient | None) -> Result[WorkItemDraft, WtjError]:
    """Produce exactly one draft; never returns Err."""
    if client is None:
        logger.warning("No AI token configured, using rule-based analysis")
        return Ok(fallback_draft(change_set))

    completion = await client.complete(build_prompt(change_set))
    match completion.and_then(parse_draft):
        case Ok(draft):
            return Ok(draft)
        case Err(error):
            logger.warning("AI analysis failed, using fallback: {}", error.message)
            return Ok(fallback_draft(change_set))
