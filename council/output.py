"""Rich console output and markdown file save for council results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from council.models import CouncilResult, ModelResponse

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _response_preview(response: ModelResponse, words: int = 50) -> str:
    """Return first N words of a response."""
    all_words = response.content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def print_opinions(result: CouncilResult) -> None:
    """Print a brief preview of every stage-one opinion."""
    console.print(Rule(f"[bold cyan]Opinions ({len(result.stage1)}/{result.metadata.member_count})[/bold cyan]"))
    for resp in result.stage1:
        console.print(
            Panel(
                _response_preview(resp),
                title=f"[bold]{resp.member}[/bold] ({resp.model})",
                subtitle=f"{resp.latency_sec:.1f}s",
                border_style="dim",
            )
        )


def print_rankings(result: CouncilResult) -> None:
    """Print the aggregate peer ranking as a table."""
    console.print(Rule("[bold cyan]Peer Rankings[/bold cyan]"))
    rankings = result.metadata.aggregate_rankings
    if not rankings:
        console.print(Text("No usable peer rankings were returned.", style="yellow"))
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Member")
    table.add_column("Avg rank", justify="right")
    table.add_column("Votes", justify="right")
    for i, entry in enumerate(rankings, start=1):
        table.add_row(str(i), entry.member, f"{entry.average_rank:.2f}", str(entry.vote_count))
    console.print(table)


def print_synthesis(result: CouncilResult) -> None:
    """Print the chairman's answer using Rich markdown."""
    console.print(Rule("[bold green]Council Synthesis[/bold green]"))
    console.print(
        Text(
            f"Chairman: {result.stage3.member} | "
            f"Duration: {result.duration_sec:.1f}s | "
            f"Opinions: {len(result.stage1)}/{result.metadata.member_count} | "
            f"Reviews: {len(result.stage2)}",
            style="dim",
        )
    )
    if result.stage3.failed:
        console.print(Text(result.stage3.content, style="bold red"))
    else:
        console.print(Markdown(result.stage3.content))


def render_markdown(result: CouncilResult, source: str = "cli") -> str:
    """Render the full council record as a markdown document."""
    meta = result.metadata
    member_to_label = {member: label for label, member in meta.label_to_member.items()}

    lines: list[str] = [
        f"# LLM Council: {result.query[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Council:** {', '.join(r.member for r in result.stage1)} "
        f"({len(result.stage1)}/{meta.member_count} answered)",
        f"**Chairman:** {meta.chairman}",
        f"**Mode:** {result.mode or 'none'}",
        f"**Duration:** {result.duration_sec:.1f}s",
        f"**Source:** {source}",
        "",
        "---",
        "",
        "## Stage 1: Opinions",
        "",
    ]

    for resp in result.stage1:
        label = member_to_label.get(resp.member, "")
        lines.append(f"### {resp.member} ({resp.model}) - {label}")
        lines.append("")
        lines.append(resp.content)
        lines.append("")
        lines.append(
            f"*Latency: {resp.latency_sec:.2f}s"
            + (f" | Tokens: {resp.token_count}" if resp.token_count else "")
            + "*"
        )
        lines.append("")

    lines += ["## Stage 2: Peer Review", ""]
    for evaluation in result.stage2:
        ranking = ", ".join(evaluation.parsed_ranking) if evaluation.parsed_ranking else "no ranking parsed"
        lines.append(f"### Review by {evaluation.member}")
        lines.append("")
        lines.append(evaluation.evaluation)
        lines.append("")
        lines.append(f"*Parsed ranking: {ranking}*")
        lines.append("")

    lines += [
        "### Aggregate Ranking",
        "",
        "| # | Member | Avg rank | Votes |",
        "|---|--------|----------|-------|",
    ]
    for i, entry in enumerate(meta.aggregate_rankings, start=1):
        lines.append(f"| {i} | {entry.member} | {entry.average_rank:.2f} | {entry.vote_count} |")
    lines.append("")

    lines += ["### Label Mapping", ""]
    for label, member in meta.label_to_member.items():
        lines.append(f"- {label}: {member}")
    lines.append("")

    lines += [
        f"## Stage 3: Synthesis (by {result.stage3.member})",
        "",
        result.stage3.content,
        "",
    ]
    return "\n".join(lines)


def save_to_file(
    result: CouncilResult,
    output_dir: Path,
    source: str = "cli",
    slug_override: str | None = None,
) -> Path:
    """Save the full council transcript as a markdown file.

    Args:
        result: The completed CouncilResult.
        output_dir: Directory to save the file in.
        source: Where the question came from, recorded in the header.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the question text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(result.query)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    filepath.write_text(render_markdown(result, source=source), encoding="utf-8")
    logger.info("Council transcript saved to: %s", filepath)
    return filepath
