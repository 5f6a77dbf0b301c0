"""Stage 2: anonymized peer review. Every member ranks every surviving answer."""

import logging
from collections.abc import Sequence

from config.config_loader import SamplingParams
from council.dispatch import query_members
from council.models import AnonymizedEntry, PeerEvaluation
from council.providers.base import CompletionClient, Messages
from council.ranking import parse_ranking

logger = logging.getLogger(__name__)


def format_anonymized_responses(entries: Sequence[AnonymizedEntry]) -> str:
    """Render entries as 'Response X:' blocks. Member names never appear."""
    return "\n\n---\n\n".join(f"{e.tag}:\n{e.response.content}" for e in entries)


def build_ranking_messages(
    query: str,
    entries: Sequence[AnonymizedEntry],
    template: str,
) -> Messages:
    """Build the single-message ranking request for a set of anonymized answers.

    Args:
        query: The original question.
        entries: Labelled stage-one answers.
        template: Prompt template with {question} and {responses} placeholders.
    """
    prompt = template.format(
        question=query,
        responses=format_anonymized_responses(entries),
    )
    return [{"role": "user", "content": prompt}]


async def collect_rankings(
    client: CompletionClient,
    query: str,
    entries: Sequence[AnonymizedEntry],
    members: Sequence[str],
    template: str,
    sampling: SamplingParams,
) -> list[PeerEvaluation]:
    """Ask every member to critique and rank the anonymized answers.

    The request goes to the whole configured council, including members whose
    stage-one call failed. A member may end up ranking its own answer.

    Returns:
        One PeerEvaluation per member that replied; parsed_ranking may be empty.
    """
    messages = build_ranking_messages(query, entries, template)
    replies = await query_members(client, members, messages, sampling)

    evaluations: list[PeerEvaluation] = []
    for reply in replies:
        parsed = parse_ranking(reply.content)
        if not parsed:
            logger.info("No ranking found in review from %s, it casts no votes", reply.member)
        evaluations.append(
            PeerEvaluation(
                member=reply.member,
                evaluation=reply.content,
                parsed_ranking=tuple(parsed),
            )
        )
    return evaluations
