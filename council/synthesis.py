"""Stage 3: the chairman turns opinions, reviews and rankings into one answer."""

import logging
from collections.abc import Sequence

from config.config_loader import SamplingParams
from council.models import AggregateRankEntry, ChairmanResult, ModelResponse, PeerEvaluation
from council.providers.base import CompletionClient, Messages, ProviderError

logger = logging.getLogger(__name__)

CHAIRMAN_FAILURE_PLACEHOLDER = (
    "Chairman model failed to synthesize a final answer. "
    "Please see the individual opinions and peer reviews instead."
)


def _format_responses(stage1: Sequence[ModelResponse]) -> str:
    return "\n\n---\n\n".join(f"Model: {r.member}\nResponse:\n{r.content}" for r in stage1)


def _format_rankings(aggregate: Sequence[AggregateRankEntry]) -> str:
    if not aggregate:
        return "(no usable peer rankings)"
    return "\n".join(
        f"{i}. {e.member} (avg rank: {e.average_rank}, votes: {e.vote_count})"
        for i, e in enumerate(aggregate, start=1)
    )


def _format_reviews(stage2: Sequence[PeerEvaluation]) -> str:
    if not stage2:
        return "(no peer reviews)"
    return "\n\n---\n\n".join(f"Reviewer: {e.member}\n{e.evaluation}" for e in stage2)


def build_chairman_messages(
    query: str,
    stage1: Sequence[ModelResponse],
    stage2: Sequence[PeerEvaluation],
    aggregate: Sequence[AggregateRankEntry],
    template: str,
) -> Messages:
    """Build the chairman request from the complete council record.

    The template receives {question}, {responses}, {rankings} and {reviews}.
    """
    prompt = template.format(
        question=query,
        responses=_format_responses(stage1),
        rankings=_format_rankings(aggregate),
        reviews=_format_reviews(stage2),
    )
    return [{"role": "user", "content": prompt}]


async def synthesize(
    client: CompletionClient,
    query: str,
    stage1: Sequence[ModelResponse],
    stage2: Sequence[PeerEvaluation],
    aggregate: Sequence[AggregateRankEntry],
    chairman: str,
    template: str,
    sampling: SamplingParams,
) -> ChairmanResult:
    """Run the chairman call.

    Never raises: any failure, including an empty answer, yields a
    ChairmanResult carrying CHAIRMAN_FAILURE_PLACEHOLDER.
    """
    messages = build_chairman_messages(query, stage1, stage2, aggregate, template)

    logger.info("Running synthesis via %s", chairman)

    try:
        response = await client.complete(
            chairman,
            messages,
            temperature=sampling.temperature,
            max_tokens=sampling.max_tokens,
        )
    except ProviderError as exc:
        logger.warning("Chairman %s failed: %s", chairman, exc)
        return ChairmanResult(member=chairman, content=CHAIRMAN_FAILURE_PLACEHOLDER, failed=True)
    except Exception as exc:
        logger.warning("Chairman %s unexpected failure: %s", chairman, exc)
        return ChairmanResult(member=chairman, content=CHAIRMAN_FAILURE_PLACEHOLDER, failed=True)

    if not response.content:
        logger.warning("Chairman %s returned empty content", chairman)
        return ChairmanResult(member=chairman, content=CHAIRMAN_FAILURE_PLACEHOLDER, failed=True)

    return ChairmanResult(member=chairman, content=response.content)
