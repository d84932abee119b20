"""Configuration loading: one TOML file plus WTJ_* environment overrides."""

from pathlib import Path
from typing import Annotated, Literal

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict
from tomlkit.exceptions import TOMLKitError

from wtj.errors import ConfigurationError
from wtj.result import Err, Ok, Result

CONFIG_FILENAME = ".wtj.toml"

DEFAULT_SKIP_BRANCHES = ["main", "master", "develop", "staging"]


def _blank(value: str | SecretStr | None) -> bool:
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    return value is None or not value.strip()


class ShortcutConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["shortcut"] = "shortcut"
    token: SecretStr | None = None
    project_id: int | None = None
    iteration_id: int | None = None
    owner_id: str | None = None  # member UUID

    def missing_fields(self) -> list[str]:
        return ["token"] if _blank(self.token) else []


class JiraConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["jira"] = "jira"
    base_url: str | None = None  # https://acme.atlassian.net
    email: str | None = None
    api_token: SecretStr | None = None
    project_key: str | None = None
    sprint_id: int | None = None
    assignee_id: str | None = None  # Atlassian account id

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

    def missing_fields(self) -> list[str]:
        required = {
            "base_url": self.base_url,
            "email": self.email,
            "api_token": self.api_token,
            "project_key": self.project_key,
        }
        return [name for name, value in required.items() if _blank(value)]


TrackerConfig = Annotated[ShortcutConfig | JiraConfig, Field(discriminator="kind")]


class AiSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: SecretStr | None = None  # no token: drafts come from the rule-based fallback
    model: str = "gpt-4.1"
    base_url: str = "https://api.openai.com/v1"


class GitSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_branch: str = "main"
    skip_branches: list[str] = Field(default_factory=lambda: list(DEFAULT_SKIP_BRANCHES))


class WtjSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WTJ_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tracker: TrackerConfig
    ai: AiSettings = AiSettings()
    git: GitSettings = GitSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # init kwargs carry the TOML file; env vars and .env win over it
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def _read_toml(path: Path) -> dict:
    """Load the config file as plain python data, or {} if it does not exist."""
    if not path.exists():
        return {}
    with path.open() as fh:
        return tomlkit.load(fh).unwrap()


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error["loc"])
        parts.append(f"{loc}: {error['msg']}")
    return "; ".join(parts)


def load_config(path: Path) -> Result[WtjSettings, ConfigurationError]:
    """Read, parse and validate the configuration once per process.

    The returned settings are injected into the pipeline; no component reads
    the file again.
    """
    try:
        data = _read_toml(path)
    except (OSError, TOMLKitError) as exc:
        return Err(ConfigurationError(f"Invalid config file {path}: {exc}"))

    try:
        settings = WtjSettings(**data)
    except ValidationError as exc:
        if not path.exists():
            return Err(ConfigurationError(f"Config file not found: {path}. Run 'wtj install-hook' and create it."))
        return Err(ConfigurationError(f"Invalid config file {path}: {_describe(exc)}"))

    missing = settings.tracker.missing_fields()
    if missing:
        return Err(
            ConfigurationError(
                f"Missing {settings.tracker.kind} settings: {', '.join(missing)}. "
                f"Set them in the [tracker] section of {path} or via WTJ_TRACKER__<FIELD>."
            )
        )
    return Ok(settings)
