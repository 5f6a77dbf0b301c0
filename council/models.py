"""Pure dataclasses for the council deliberation pipeline. No I/O, no deps."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class ModelResponse:
    member: str            # council member identifier, e.g. "llama-70b", "claude"
    model: str             # actual model string used
    content: str
    latency_sec: float
    token_count: int | None


# A stage-one opinion is a successful completion from a member
StageOneResponse = ModelResponse


@dataclass(frozen=True)
class AnonymizedEntry:
    label: str             # "A", "B", ... in survival order
    response: ModelResponse

    @property
    def tag(self) -> str:
        """The label as evaluators see it, e.g. 'Response A'."""
        return f"Response {self.label}"


@dataclass(frozen=True)
class PeerEvaluation:
    member: str            # evaluating member
    evaluation: str        # raw critique text
    parsed_ranking: tuple[str, ...] = ()   # "Response X" tags, best first


@dataclass(frozen=True)
class AggregateRankEntry:
    member: str
    average_rank: float
    vote_count: int


@dataclass(frozen=True)
class ChairmanResult:
    member: str
    content: str
    failed: bool = False


@dataclass(frozen=True)
class CouncilMetadata:
    label_to_member: Mapping[str, str]     # "Response X" -> member, read-only
    aggregate_rankings: tuple[AggregateRankEntry, ...]
    member_count: int
    chairman: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "label_to_member", MappingProxyType(dict(self.label_to_member)))


@dataclass(frozen=True)
class CouncilResult:
    query: str
    stage1: tuple[ModelResponse, ...]
    stage2: tuple[PeerEvaluation, ...]
    stage3: ChairmanResult
    metadata: CouncilMetadata
    duration_sec: float = 0.0
    mode: str | None = None
