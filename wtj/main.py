"""WTJ CLI: all commands."""

import asyncio
import stat
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wtj.gateway import get_provider
from wtj.git import GitRepository
from wtj.pipeline import analyze, completion_client_for, report_outcome, run_pipeline
from wtj.providers.base import TrackerProvider
from wtj.result import Err, Ok
from wtj.settings import CONFIG_FILENAME, JiraConfig, ShortcutConfig, WtjSettings, load_config

app = typer.Typer(help="wtj: turn a feature branch into a Shortcut story or Jira issue on push", no_args_is_help=True)

console = Console(stderr=True)

ConfigOpt = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the wtj TOML config"),
]
VerboseOpt = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]

HOOK_MARKER = "# wtj pre-push hook"

_HOOK_TEMPLATE = """\
#!/bin/sh
{marker}
# Creates a tracker issue for new branches and renames the branch to carry its id.
exec wtj run --config "{config}"
"""


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    if verbose:
        logger.add(
            lambda msg: console.print(f"[dim]{escape(msg.rstrip())}[/]", highlight=False),
            level="DEBUG",
            format="{time:HH:mm:ss} | {level:<7} | {message}",
        )
    else:
        logger.add(
            lambda msg: console.print(f"[yellow]{escape(msg.rstrip())}[/]", highlight=False),
            level="WARNING",
            format="⚠️  {message}",
        )


def get_settings(config: Path) -> WtjSettings:
    match load_config(config):
        case Ok(settings):
            return settings
        case Err(error):
            rprint(f"[red]{escape(error.message)}[/red]")
            raise typer.Exit(1)


def get_provider_or_exit(settings: WtjSettings) -> TrackerProvider:
    match get_provider(settings.tracker):
        case Ok(provider):
            return provider
        case Err(error):
            rprint(f"[red]{escape(error.message)}[/red]")
            raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("run")
def run_cmd(config: ConfigOpt = Path(CONFIG_FILENAME), verbose: VerboseOpt = False) -> None:
    """Run the pre-push pipeline: analyze, create the issue, rename the branch."""
    _configure_logging(verbose)
    settings = get_settings(config)
    result = asyncio.run(run_pipeline(settings, GitRepository(), completion_client_for(settings)))
    raise typer.Exit(report_outcome(result))


@app.command("analyze")
def analyze_cmd(config: ConfigOpt = Path(CONFIG_FILENAME), verbose: VerboseOpt = False) -> None:
    """Preview the draft for the current branch without creating anything."""
    _configure_logging(verbose)
    settings = get_settings(config)
    result = asyncio.run(analyze(settings, GitRepository(), completion_client_for(settings)))

    match result:
        case Err(error) if error.is_skip:
            rprint(f"[dim]⏭️  {escape(error.message)}[/dim]")
            return
        case Err(error):
            rprint(f"[red]❌ {escape(error.message)}[/red]")
            raise typer.Exit(1)
        case Ok((change_set, draft)):
            pass

    table = Table(title=f"Draft for {change_set.current_branch}")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Title", escape(draft.title))
    table.add_row("Type", draft.kind)
    table.add_row("Points", str(draft.point_estimate))
    table.add_row("Labels", ", ".join(draft.labels) if draft.labels else "none")
    table.add_row("Confidence", f"{round(draft.confidence * 100)}% ({draft.provenance})")
    table.add_row("Commits", str(len(change_set.commits)))
    table.add_row("Changes", f"+{change_set.total_insertions}/-{change_set.total_deletions}")
    table.add_row("Description", escape(draft.description))

    rprint(table)


@app.command("check")
def check_cmd(config: ConfigOpt = Path(CONFIG_FILENAME), verbose: VerboseOpt = False) -> None:
    """Verify the tracker credentials."""
    _configure_logging(verbose)
    settings = get_settings(config)
    provider = get_provider_or_exit(settings)

    match asyncio.run(provider.validate_auth()):
        case Ok(user):
            rprint(f"[green]✓[/green] {provider.name} credentials OK (authenticated as {escape(user)})")
        case Err(error):
            rprint(f"[red]{escape(error.message)}[/red]")
            raise typer.Exit(1)


@app.command("projects")
def projects_cmd(config: ConfigOpt = Path(CONFIG_FILENAME), verbose: VerboseOpt = False) -> None:
    """List projects available in the configured tracker."""
    _configure_logging(verbose)
    settings = get_settings(config)
    provider = get_provider_or_exit(settings)

    match asyncio.run(provider.list_projects()):
        case Err(error):
            rprint(f"[red]{escape(error.message)}[/red]")
            raise typer.Exit(1)
        case Ok(projects):
            pass

    table = Table(title=f"{provider.name} projects")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("ID", style="dim")

    for p in projects:
        table.add_row(p.key, escape(p.name), p.id)

    rprint(table)


@app.command("config-show")
def config_show(config: ConfigOpt = Path(CONFIG_FILENAME)) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(config)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def show(val: object) -> str:
        return "[dim](not set)[/dim]" if val is None else escape(str(val))

    table = Table(title="WTJ Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    tracker = settings.tracker
    table.add_row("tracker", tracker.kind)
    match tracker:
        case ShortcutConfig():
            table.add_row("shortcut token", mask(tracker.token.get_secret_value() if tracker.token else None))
            table.add_row("project_id", show(tracker.project_id))
            table.add_row("iteration_id", show(tracker.iteration_id))
            table.add_row("owner_id", show(tracker.owner_id))
        case JiraConfig():
            table.add_row("base_url", show(tracker.base_url))
            table.add_row("email", show(tracker.email))
            table.add_row("api_token", mask(tracker.api_token.get_secret_value() if tracker.api_token else None))
            table.add_row("project_key", show(tracker.project_key))
            table.add_row("sprint_id", show(tracker.sprint_id))
            table.add_row("assignee_id", show(tracker.assignee_id))

    table.add_row("ai token", mask(settings.ai.token.get_secret_value() if settings.ai.token else None))
    table.add_row("ai model", settings.ai.model)
    table.add_row("base_branch", settings.git.base_branch)
    table.add_row("skip_branches", escape(", ".join(settings.git.skip_branches)) or "[dim](none)[/dim]")

    rprint(table)


@app.command("install-hook")
def install_hook(
    config: ConfigOpt = Path(CONFIG_FILENAME),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing pre-push hook")] = False,
    repo: Annotated[Path, typer.Option("--repo", help="Repository root")] = Path("."),
) -> None:
    """Install the pre-push hook and keep the config file out of git.

    Safe to re-run. Refuses to replace a pre-push hook it did not write unless
    --force is passed.
    """
    git_dir = repo / ".git"
    if not git_dir.is_dir():
        rprint("[red]❌ Not in a git repository[/red]")
        raise typer.Exit(1)

    hook_path = git_dir / "hooks" / "pre-push"
    if hook_path.exists() and HOOK_MARKER not in hook_path.read_text() and not force:
        rprint(f"[yellow]{hook_path} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)

    hook_path.parent.mkdir(parents=True, exist_ok=True)
    hook_path.write_text(_HOOK_TEMPLATE.format(marker=HOOK_MARKER, config=config))
    hook_path.chmod(hook_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    rprint(f"[green]✓[/green] Git hook installed at {hook_path}")

    gitignore = repo / ".gitignore"
    entry = config.name
    existing = gitignore.read_text() if gitignore.exists() else ""
    if entry not in existing.splitlines():
        prefix = "" if not existing or existing.endswith("\n") else "\n"
        gitignore.write_text(f"{existing}{prefix}{entry}\n")
        rprint(f"[green]✓[/green] Added {entry} to .gitignore")

    if not (repo / config).exists():
        hint = f'create {config} with a [tracker] section (kind = "shortcut" or "jira").'
        rprint(f"[dim]Next:[/dim] {escape(hint)}")
