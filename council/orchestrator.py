"""Council orchestration: opinions, anonymized peer review, chairman synthesis."""

import asyncio
import enum
import logging
import time
from collections.abc import Callable

from config.config_loader import CouncilConfig, PromptsConfig, SamplingConfig
from council.anonymize import anonymize
from council.dispatch import query_members
from council.models import CouncilMetadata, CouncilResult
from council.peer_review import collect_rankings
from council.providers.base import CompletionClient, Messages
from council.ranking import aggregate_rankings
from council.synthesis import synthesize

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class AllMembersFailedError(RuntimeError):
    """No council member produced a stage-one answer."""


class CouncilUnavailableError(RuntimeError):
    """The council is not enabled for the requested mode."""


class CouncilStage(enum.Enum):
    IDLE = "idle"
    STAGE1 = "stage1"
    STAGE2 = "stage2"
    STAGE3 = "stage3"
    DONE = "done"
    ABORTED = "aborted"


class CouncilOrchestrator:
    """Runs the three-stage council protocol against a CompletionClient.

    Each call to run() owns its own state; the orchestrator only keeps the
    stage of the most recent run for observers.
    """

    def __init__(
        self,
        client: CompletionClient,
        council: CouncilConfig,
        prompts: PromptsConfig,
        sampling: SamplingConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._client = client
        self._council = council
        self._prompts = prompts
        self._sampling = sampling or SamplingConfig()
        self._on_progress = on_progress
        self.stage = CouncilStage.IDLE

    def _notify(self, message: str) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(message)
        except Exception as exc:
            logger.warning("Progress callback raised, ignoring: %s", exc)

    async def _pace(self) -> None:
        if self._council.stage_delay_sec > 0:
            await asyncio.sleep(self._council.stage_delay_sec)

    async def run(
        self,
        query: str,
        system_prompt: str | None = None,
        mode: str | None = None,
    ) -> CouncilResult:
        """Convene the council on a query.

        Args:
            query: The user's question.
            system_prompt: Optional system message for stage-one opinions.
            mode: Invocation context; must be one of the council's enabled modes.

        Returns:
            The assembled CouncilResult.

        Raises:
            CouncilUnavailableError: If mode is given and not enabled.
            AllMembersFailedError: If no member answered in stage one.
        """
        self.stage = CouncilStage.IDLE
        if mode is not None and not self._council.is_eligible(mode):
            raise CouncilUnavailableError(f"Council is not enabled for mode '{mode}'")

        members = list(self._council.members)
        started = time.monotonic()

        # Stage 1: independent opinions
        self.stage = CouncilStage.STAGE1
        self._notify(f"Stage 1/3: Collecting opinions from {len(members)} council members...")
        messages: Messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": query})

        stage1 = await query_members(self._client, members, messages, self._sampling.opinion)
        if not stage1:
            self.stage = CouncilStage.ABORTED
            logger.error("All %d council members failed in stage 1", len(members))
            raise AllMembersFailedError("All council members failed to respond")

        logger.info("Stage 1 complete: %d/%d members answered", len(stage1), len(members))
        self._notify(f"Stage 1/3: Complete - received {len(stage1)}/{len(members)} opinions")

        await self._pace()

        # Stage 2: anonymized peer review
        self.stage = CouncilStage.STAGE2
        self._notify("Stage 2/3: Peer review - members are anonymously ranking each other...")
        entries, label_to_member = anonymize(stage1)
        logger.debug("Label map: %s", label_to_member)

        stage2 = await collect_rankings(
            self._client,
            query,
            entries,
            members,
            self._prompts.ranking,
            self._sampling.review,
        )
        aggregate = aggregate_rankings(stage2, label_to_member)

        logger.info("Stage 2 complete: %d/%d peer reviews", len(stage2), len(members))
        self._notify(f"Stage 2/3: Complete - {len(stage2)} peer reviews collected")

        await self._pace()

        # Stage 3: chairman synthesis
        self.stage = CouncilStage.STAGE3
        chairman = self._council.chairman
        self._notify(f"Stage 3/3: Chairman {chairman} is synthesizing the final answer...")
        stage3 = await synthesize(
            self._client,
            query,
            stage1,
            stage2,
            aggregate,
            chairman,
            self._prompts.chairman,
            self._sampling.synthesis,
        )
        if not stage3.failed:
            self._notify("Stage 3/3: Complete - final synthesis ready")

        self.stage = CouncilStage.DONE
        return CouncilResult(
            query=query,
            stage1=tuple(stage1),
            stage2=tuple(stage2),
            stage3=stage3,
            metadata=CouncilMetadata(
                label_to_member=label_to_member,
                aggregate_rankings=tuple(aggregate),
                member_count=len(members),
                chairman=chairman,
            ),
            duration_sec=time.monotonic() - started,
            mode=mode,
        )
