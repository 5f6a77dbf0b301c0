"""Parse peer rankings out of free text and aggregate them across evaluators."""

import logging
import re
from collections.abc import Mapping, Sequence

from council.anonymize import label_key
from council.models import AggregateRankEntry, PeerEvaluation

logger = logging.getLogger(__name__)

RANKING_MARKER = "FINAL RANKING:"

# A label is a single capital letter, so "Response Clarity" is not "Response C"
_NUMBERED_RE = re.compile(r"\d+\.\s*(Response [A-Z])\b")
_LABEL_RE = re.compile(r"\bResponse [A-Z]\b")


def _unique(labels: list[str]) -> list[str]:
    return list(dict.fromkeys(labels))


def parse_ranking(text: str) -> list[str]:
    """Extract an ordered list of 'Response X' tags from an evaluation.

    Tries the numbered list after the last FINAL RANKING: marker first, then any
    labels after the marker, then any labels anywhere in the text. A label
    repeated in the text keeps only its first position.

    Returns:
        Tags best first, or [] if the text names no labels at all.
    """
    if not text:
        return []

    if RANKING_MARKER in text:
        section = text.rpartition(RANKING_MARKER)[2]

        numbered = _NUMBERED_RE.findall(section)
        if numbered:
            return _unique(numbered)

        loose = _LABEL_RE.findall(section)
        if loose:
            logger.debug("Ranking section has no numbered list, using loose labels")
            return _unique(loose)

    anywhere = _LABEL_RE.findall(text)
    if anywhere:
        logger.debug("No usable %s section, scanning full text for labels", RANKING_MARKER)
    return _unique(anywhere)


def aggregate_rankings(
    evaluations: Sequence[PeerEvaluation],
    label_to_member: Mapping[str, str],
) -> list[AggregateRankEntry]:
    """Average each member's 1-based position across all evaluations.

    Labels that map to no member are dropped but still occupy their
    position. Members nobody ranked are left out. Sorted best first; equal
    averages keep the members' stage-one order.
    """
    lookup = {label_key(label): member for label, member in label_to_member.items()}
    stage1_order = {member: i for i, member in enumerate(lookup.values())}

    positions: dict[str, list[int]] = {}
    for evaluation in evaluations:
        for idx, label in enumerate(evaluation.parsed_ranking, start=1):
            member = lookup.get(label_key(label))
            if member is None:
                logger.debug("Dropping unknown label %r from %s", label, evaluation.member)
                continue
            positions.setdefault(member, []).append(idx)

    entries = [
        AggregateRankEntry(
            member=member,
            average_rank=round(sum(ranks) / len(ranks), 2),
            vote_count=len(ranks),
        )
        for member, ranks in positions.items()
    ]
    return sorted(entries, key=lambda e: (e.average_rank, stage1_order[e.member]))
