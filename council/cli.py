"""Click CLI — loads config, builds providers, convenes the council, prints and saves the result."""

import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, CouncilConfig, check_roster, load_config
from council.models import CouncilResult
from council.orchestrator import AllMembersFailedError, CouncilOrchestrator, CouncilUnavailableError
from council.output import print_opinions, print_rankings, print_synthesis, save_to_file
from council.providers.anthropic import AnthropicProvider
from council.providers.base import AIProvider, CompletionClient
from council.providers.compatible import OpenAICompatibleProvider
from council.providers.gemini import GeminiProvider
from council.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "openai": OpenAIProvider,
    "openai_compatible": OpenAICompatibleProvider,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Build a provider for every model with an API key. Returns dict keyed by member name."""
    providers: dict[str, AIProvider] = {}
    for name in sorted(config.available_providers):
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Model '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            providers[name] = provider_cls(model_cfg)
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers


def _resolve_council(
    config: AppConfig,
    members_arg: str | None,
    chairman_arg: str | None,
    delay_arg: float | None,
) -> CouncilConfig:
    """Apply CLI overrides to the configured council. Raises click.BadParameter on unknown models or an invalid roster."""
    council = config.council
    overrides: dict = {}

    if members_arg:
        members = tuple(m.strip() for m in members_arg.split(",") if m.strip())
        unknown = [m for m in members if m not in config.models]
        if unknown:
            raise click.BadParameter(f"Unknown model(s): {', '.join(unknown)}", param_hint="--members")
        try:
            check_roster(members)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--members") from exc
        overrides["members"] = members
    if chairman_arg:
        if chairman_arg not in config.models:
            raise click.BadParameter(f"Unknown model: {chairman_arg}", param_hint="--chairman")
        overrides["chairman"] = chairman_arg
    if delay_arg is not None:
        overrides["stage_delay_sec"] = delay_arg

    return dataclasses.replace(council, **overrides) if overrides else council


def _reachable_members(council: CouncilConfig, client: CompletionClient) -> list[str]:
    """Warn about members without a provider and return the ones the client can call.

    Unreachable members stay on the council and count as stage-one failures.
    """
    reachable = []
    for name in council.members:
        if name in client:
            reachable.append(name)
        else:
            logger.warning("Council member '%s' is unavailable (no API key or failed to start), it will not answer", name)
    if council.chairman not in client:
        logger.warning("Chairman '%s' is unavailable, synthesis will fall back to the placeholder", council.chairman)
    return reachable


async def _run_council(
    question_text: str,
    config: AppConfig,
    council: CouncilConfig,
    client: CompletionClient,
    mode: str | None,
) -> CouncilResult:
    """Convene the council with a spinner that follows stage progress."""
    system_prompt = config.prompts.system.get(mode) if mode else None

    console.print(f"\n[bold cyan]LLM Council[/bold cyan] — {len(council.members)} members [{mode or 'no mode'}]")
    console.print(f"Members: {', '.join(council.members)}")
    console.print(f"Chairman: {council.chairman}")
    console.print(f"Question: [italic]{question_text[:80]}{'...' if len(question_text) > 80 else ''}[/italic]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Convening council...", total=None)

        def on_progress(message: str) -> None:
            progress.update(task, description=message)
            if "Complete" in message:
                progress.print(f"[green]OK[/green] {message}")

        orchestrator = CouncilOrchestrator(
            client=client,
            council=council,
            prompts=config.prompts,
            sampling=config.sampling,
            on_progress=on_progress,
        )
        return await orchestrator.run(question_text, system_prompt=system_prompt, mode=mode)


@click.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True), help="Read question from a text/markdown file")
@click.option("--mode", default=None, help="Invocation mode, selects the system prompt (default: from config)")
@click.option("--members", default=None, help="Comma-separated council members, overrides config")
@click.option("--chairman", default=None, help="Which model synthesizes (default: from config)")
@click.option("--delay", default=None, type=float, help="Seconds to wait between stages (default: from config)")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Do not write a markdown transcript")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    question: str | None,
    question_file: str | None,
    mode: str | None,
    members: str | None,
    chairman: str | None,
    delay: float | None,
    output_path: str | None,
    no_save: bool,
    verbose: bool,
) -> None:
    """LLM Council -- ask several models, let them rank each other, get one answer.

    \b
    Examples:
      llm-council "Should we use REST or GraphQL?"
      llm-council "Monorepo vs polyrepo?" --mode roast
      llm-council "SQL or NoSQL?" --members gpt,claude,llama-70b --chairman claude
      llm-council --file question.md --delay 0
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    if question_file:
        question_text = Path(question_file).read_text(encoding="utf-8").strip()
        question_source = question_file
    elif question:
        question_text = question
        question_source = "cli"
    else:
        console.print("[bold red]Error:[/bold red] Provide a QUESTION argument or --file.")
        sys.exit(1)

    council = _resolve_council(config, members, chairman, delay)
    effective_mode = mode if mode is not None else config.defaults.mode
    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    client = CompletionClient(_build_all_providers(config))
    if not _reachable_members(council, client):
        console.print("[bold red]Error:[/bold red] No council members available. Check API keys in .env.")
        sys.exit(1)

    try:
        result = asyncio.run(_run_council(question_text, config, council, client, effective_mode))
    except CouncilUnavailableError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)
    except AllMembersFailedError as exc:
        console.print(f"[bold red]Council failed:[/bold red] {exc}. Please try again.")
        sys.exit(1)

    print_opinions(result)
    print_rankings(result)
    print_synthesis(result)

    if not no_save:
        saved_path = save_to_file(result, effective_output, source=question_source)
        console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


if __name__ == "__main__":
    main()
