from __future__ import annotations

from typing import TYPE_CHECKING, Any

from civicops.domain.pipeline import STAGE_ORDER, PipelineState

if TYPE_CHECKING:
    from civicops.domain.pipeline import PipelineContext


class ScriptedStage:
    """Stage double failing with the scripted errors before returning its report."""

    def __init__(
        self,
        state: PipelineState,
        *,
        failures: list[Exception] | None = None,
        report: dict[str, Any] | None = None,
    ) -> None:
        self.state = state
        self.name = state.value.lower()
        self.failures = list(failures or [])
        self.report = report if report is not None else {"ok": True}
        self.calls = 0

    async def run(self, context: PipelineContext) -> dict[str, Any]:
        _ = context
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return dict(self.report)


def scripted_stages(
    failures: dict[PipelineState, list[Exception]] | None = None,
) -> dict[PipelineState, ScriptedStage]:
    return {
        state: ScriptedStage(state, failures=(failures or {}).get(state))
        for state in STAGE_ORDER
    }


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
