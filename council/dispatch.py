"""Concurrent fan-out of one message set to many council members."""

import asyncio
import logging
from collections.abc import Sequence

from config.config_loader import SamplingParams
from council.models import ModelResponse
from council.providers.base import CompletionClient, Messages, ProviderError

logger = logging.getLogger(__name__)

# Quality gate: warn when fewer than this many members answer
_MIN_QUALITY_RESPONSES = 3


async def _call_member(
    client: CompletionClient,
    member: str,
    messages: Messages,
    sampling: SamplingParams,
) -> ModelResponse | ProviderError:
    """Call a single member once.

    Never raises: returns the ProviderError on failure.
    """
    try:
        return await client.complete(
            member,
            messages,
            temperature=sampling.temperature,
            max_tokens=sampling.max_tokens,
        )
    except ProviderError as exc:
        logger.warning("Member %s failed: %s", member, exc)
        return exc
    except Exception as exc:
        err = ProviderError(member, f"Unexpected error: {exc}")
        logger.warning("Member %s unexpected failure: %s", member, exc)
        return err


async def query_members(
    client: CompletionClient,
    members: Sequence[str],
    messages: Messages,
    sampling: SamplingParams,
) -> list[ModelResponse]:
    """Send the same messages to every member concurrently and keep the successes.

    Waits for every call to settle. Failed members are simply absent from the
    result; surviving responses keep the order of ``members``.

    Returns:
        List of ModelResponse, possibly empty.
    """
    tasks = [_call_member(client, m, messages, sampling) for m in members]
    results = await asyncio.gather(*tasks)

    responses = [r for r in results if isinstance(r, ModelResponse)]
    # ProviderError already logged in _call_member

    if len(members) >= _MIN_QUALITY_RESPONSES and 0 < len(responses) < _MIN_QUALITY_RESPONSES:
        logger.warning(
            "WARNING: Only %d/%d members responded. Council quality is degraded.",
            len(responses),
            len(members),
        )

    logger.debug("Dispatch settled: %d/%d members succeeded", len(responses), len(members))
    return responses
