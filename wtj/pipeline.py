"""Pipeline orchestration: extract -> synthesize -> create issue -> rename branch."""

from typing import Literal

from rich import print as rprint
from rich.markup import escape

from wtj.changeset import extract_change_set
from wtj.errors import WtjError
from wtj.gateway import create_issue, tracker_label
from wtj.git import Repository
from wtj.models import ChangeSet, PipelineReport, WorkItemDraft
from wtj.result import Err, Ok, Result
from wtj.rewrite import BestEffort, rewrite_branch
from wtj.settings import WtjSettings
from wtj.synthesizer import CompletionClient, synthesize

Outcome = Literal["created", "skipped", "failed"]

# A successful run still exits non-zero: the push in flight targets the old branch name.
EXIT_CODES: dict[Outcome, int] = {"created": 1, "skipped": 0, "failed": 1}


def completion_client_for(settings: WtjSettings) -> CompletionClient | None:
    return CompletionClient(settings.ai) if settings.ai.token else None


async def analyze(
    settings: WtjSettings,
    repository: Repository,
    completion_client: CompletionClient | None = None,
) -> Result[tuple[ChangeSet, WorkItemDraft], WtjError]:
    """Extract and synthesize only; nothing is created or renamed."""
    match await extract_change_set(repository, settings.git):
        case Err() as err:
            return err
        case Ok(change_set):
            pass
    drafted = await synthesize(change_set, completion_client)
    return drafted.map(lambda draft: (change_set, draft))


async def run_pipeline(
    settings: WtjSettings,
    repository: Repository,
    completion_client: CompletionClient | None = None,
    cleanup: BestEffort | None = None,
) -> Result[PipelineReport, WtjError]:
    rprint("[bold]🔍 Analyzing git changes...[/bold]")
    match await extract_change_set(repository, settings.git):
        case Err() as err:
            return err
        case Ok(change_set):
            pass

    rprint("[bold]🤖 Analyzing with AI...[/bold]")
    match await synthesize(change_set, completion_client):
        case Err() as err:
            return err
        case Ok(draft):
            pass

    rprint(f"[bold]📝 Creating {tracker_label(settings.tracker)}...[/bold]")
    match await create_issue(draft, settings.tracker):
        case Err() as err:
            return err
        case Ok(issue):
            pass

    rprint("[bold]🔄 Updating branch name...[/bold]")
    renamed = await rewrite_branch(repository, change_set.current_branch, issue.branch_ref, cleanup)
    return renamed.map(
        lambda branch: PipelineReport(change_set=change_set, draft=draft, issue=issue, branch=branch)
    )


def classify(result: Result[PipelineReport, WtjError]) -> Outcome:
    match result:
        case Ok():
            return "created"
        case Err(error) if isinstance(error, WtjError) and error.is_skip:
            return "skipped"
        case _:
            return "failed"


def report_outcome(result: Result[PipelineReport, WtjError]) -> int:
    """Print the user-facing summary and return the process exit code."""
    outcome = classify(result)
    match result:
        case Ok(report):
            rprint("[green]✅ Issue created successfully![/green]")
            rprint(f"📋 Issue: {report.issue.url}")
            rprint(f"🌿 Branch renamed to: [bold]{report.branch}[/bold]")
            rprint(f"🎯 Confidence: {round(report.draft.confidence * 100)}%")
            rprint("")
            rprint("[yellow]⚠️  Push aborted to complete branch rename.[/yellow]")
            rprint('📌 Please run "git push" again to push the renamed branch.')
        case Err(error) if outcome == "skipped":
            rprint(f"[dim]⏭️  {escape(str(error))}. No action needed.[/dim]")
        case Err(error):
            rprint(f"[red]❌ Pipeline failed:[/red] {escape(str(error))}")
    return EXIT_CODES[outcome]
