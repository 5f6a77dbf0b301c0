"""Anonymous labelling of stage-one responses."""

from collections.abc import Sequence

from config.config_loader import MAX_MEMBERS
from council.models import AnonymizedEntry, ModelResponse

_LABEL_PREFIX = "Response "


def label_key(label: str) -> str:
    """Normalize 'Response A' or 'A' to the bare letter 'A'."""
    label = label.strip()
    if label.startswith(_LABEL_PREFIX):
        return label[len(_LABEL_PREFIX):].strip()
    return label


def anonymize(
    responses: Sequence[ModelResponse],
) -> tuple[list[AnonymizedEntry], dict[str, str]]:
    """Label responses A, B, C... in the order given.

    Returns:
        (entries, mapping) where mapping goes from 'Response X' to member name.

    Raises:
        ValueError: If there are more responses than single-letter labels.
    """
    if len(responses) > MAX_MEMBERS:
        raise ValueError(f"Cannot label {len(responses)} responses, at most {MAX_MEMBERS} are supported")

    entries = [
        AnonymizedEntry(label=chr(ord("A") + i), response=r)
        for i, r in enumerate(responses)
    ]
    mapping = {e.tag: e.response.member for e in entries}
    return entries, mapping
