"""Retrying coordinator producing one structured result per run."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from civicops.domain.errors import QualityGateError, StageFailed

from .context import PipelineContext
from .machine import PipelineStateMachine
from .state import PipelineState

if TYPE_CHECKING:
    from collections.abc import Sequence

    from civicops.domain.model import RawFact, ScoredSet
    from civicops.domain.ports.advisory import Recommendation
    from civicops.domain.ports.sources import SourceQuery

    from .stages import Stage, StageReport

log = getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

COMPLETED: Final[str] = "COMPLETED"
FAILED: Final[str] = "FAILED"
SKIPPED: Final[str] = "SKIPPED"

# deterministic rejections; retrying them cannot change the outcome
NON_RETRYABLE: Final[tuple[type[Exception], ...]] = (QualityGateError,)


class RetryingStage:
    """Run a stage up to ``max_attempts`` times with a fixed delay in between."""

    def __init__(
        self,
        inner: Stage,
        *,
        max_attempts: int = 3,
        delay_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.inner = inner
        self.name = inner.name
        self.state = inner.state
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def run(self, context: PipelineContext) -> StageReport:
        for attempt in range(1, self.max_attempts + 1):
            context.attempts[self.name] = attempt
            try:
                return await self.inner.run(context)
            except Exception as exc:
                if attempt == self.max_attempts or isinstance(exc, NON_RETRYABLE):
                    raise StageFailed(
                        self.name,
                        f"{self.name} failed after {attempt} attempt(s): {exc}",
                    ) from exc
                log.warning(
                    "Stage %s attempt %s/%s failed: %s; retrying in %.1fs",
                    self.name,
                    attempt,
                    self.max_attempts,
                    exc,
                    self.delay_seconds,
                )
                await self._sleep(self.delay_seconds)
        raise AssertionError("unreachable")


@dataclass(frozen=True, slots=True)
class StageStatus:
    status: str
    attempts: int = 0
    counters: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True)
class FailureRecord:
    stage: str
    error: str
    status: str = FAILED

    def as_dict(self) -> dict[str, str]:
        return {"status": self.status, "stage": self.stage, "error": self.error}


@dataclass(slots=True, kw_only=True)
class PipelineResult:
    scenario_hash: str
    status: str
    final_state: PipelineState
    stages: dict[str, StageStatus]
    started_at: datetime
    finished_at: datetime
    failure: FailureRecord | None = None
    scored: ScoredSet | None = None
    recommendations: list[Recommendation] = field(default_factory=list["Recommendation"])

    def as_record(self) -> dict[str, Any]:
        """JSON-ready view handed to reporting collaborators."""

        record: dict[str, Any] = {
            "scenario_hash": self.scenario_hash,
            "status": self.status,
            "final_state": self.final_state.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "stages": {
                name: {
                    "status": stage.status,
                    "attempts": stage.attempts,
                    **stage.counters,
                }
                for name, stage in self.stages.items()
            },
            "recommendations": [
                {
                    "entity_id": item.entity_id,
                    "priority": item.priority,
                    "action": item.action,
                    "flags": list(item.flags),
                    "evidence": list(item.evidence),
                }
                for item in self.recommendations
            ],
        }
        if self.failure is not None:
            record["failure"] = self.failure.as_dict()
        return record


class PipelineCoordinator:
    def __init__(
        self,
        stages: Sequence[Stage],
        *,
        max_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.machine = PipelineStateMachine(
            [
                RetryingStage(
                    stage,
                    max_attempts=max_attempts,
                    delay_seconds=retry_delay_seconds,
                    sleep=sleep,
                )
                for stage in stages
            ]
        )

    async def run(
        self,
        scenario_hash: str,
        *,
        query: SourceQuery | None = None,
        facts: Sequence[RawFact] | None = None,
    ) -> PipelineResult:
        context = PipelineContext(scenario_hash=scenario_hash)
        context.data.query = query
        if facts is not None:
            context.data.facts = list(facts)

        started_at = datetime.now(UTC)
        await self.machine.run(context)
        finished_at = datetime.now(UTC)

        stages: dict[str, StageStatus] = {}
        for stage in self.machine.stages:
            if stage.name in context.reports:
                status = COMPLETED
            elif any(error.stage == stage.name for error in context.errors):
                status = FAILED
            else:
                status = SKIPPED
            stages[stage.name] = StageStatus(
                status=status,
                attempts=context.attempts.get(stage.name, 0),
                counters=context.reports.get(stage.name, {}),
            )

        failure = None
        if context.errors:
            error = context.errors[-1]
            failure = FailureRecord(stage=error.stage, error=error.message)

        result = PipelineResult(
            scenario_hash=scenario_hash,
            status=COMPLETED if context.current_state is PipelineState.COMPLETED else FAILED,
            final_state=context.current_state,
            stages=stages,
            started_at=started_at,
            finished_at=finished_at,
            failure=failure,
            scored=context.data.scored,
            recommendations=list(context.data.recommendations),
        )
        log.info("Pipeline %s finished with status %s", scenario_hash, result.status)
        return result
