"""
Degradation chain: ordered stages, first success wins.

Every "try the structured call, then a heuristic, then a static string"
sequence in the router (intent classification, general answers, news
lookups) runs through DegradationChain. A stage fails by returning None or
raising; either way the next enabled stage runs. When all stages fail the
chain returns its static fallback (which may itself be None).
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Stage(Generic[T]):
    """One strategy in a chain. Disabled stages are skipped without running."""

    name: str
    run: Callable[[], Awaitable[Optional[T]]]
    enabled: bool = True


@dataclass
class StageFailure:
    stage: str
    error: Optional[BaseException] = None

    @property
    def description(self) -> str:
        return f"{self.stage}: {self.error}" if self.error else f"{self.stage}: no result"


@dataclass
class ChainOutcome(Generic[T]):
    """
    Result of running a chain.

    Attributes:
        value: First successful stage result, or the static fallback
        stage: Name of the stage that produced value ("fallback" if none did)
        failures: Stages that ran and failed, in order
        skipped: Stages skipped because they were disabled
    """

    value: Optional[T]
    stage: str
    failures: List[StageFailure] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.stage == "fallback"

    def errors(self) -> List[BaseException]:
        return [f.error for f in self.failures if f.error is not None]


class DegradationChain(Generic[T]):
    """Runs stages in order until one returns a non-None value."""

    def __init__(self, name: str, stages: Sequence[Stage[T]], fallback: Optional[T] = None):
        self.name = name
        self.stages = list(stages)
        self.fallback = fallback

    async def run(self) -> ChainOutcome[T]:
        failures: List[StageFailure] = []
        skipped: List[str] = []

        for stage in self.stages:
            if not stage.enabled:
                logger.debug(f"[{self.name}] stage '{stage.name}' disabled, skipping")
                skipped.append(stage.name)
                continue

            try:
                value = await stage.run()
            except Exception as e:
                logger.warning(f"⚠️ [{self.name}] stage '{stage.name}' failed: {e}")
                failures.append(StageFailure(stage.name, e))
                continue

            if value is None:
                logger.info(f"[{self.name}] stage '{stage.name}' produced no result")
                failures.append(StageFailure(stage.name))
                continue

            if failures:
                logger.info(
                    f"[{self.name}] degraded to stage '{stage.name}' after "
                    f"{[f.description for f in failures]}"
                )
            return ChainOutcome(value=value, stage=stage.name, failures=failures, skipped=skipped)

        logger.warning(f"⚠️ [{self.name}] all stages failed, using static fallback")
        return ChainOutcome(value=self.fallback, stage="fallback", failures=failures, skipped=skipped)
