"""Explicit finite-state machine driving one scenario run."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from civicops.domain.errors import CivicOpsError, StageFailed

from .context import StageError
from .state import STAGE_ORDER, PipelineEvent, PipelineState, next_state

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .context import PipelineContext
    from .stages import Stage

log = getLogger(__name__)

StateChangeListener = Callable[[PipelineState, PipelineState, "PipelineContext"], None]
CompletionListener = Callable[["PipelineContext"], None]
ErrorListener = Callable[[StageError, "PipelineContext"], None]


class PipelineStateMachine:
    """Run stages in pipeline order; any stage error routes to ``ERROR``.

    Observers are plain callbacks. They are notified after each transition and can
    never change the outcome of a run: exceptions they raise are logged and dropped.
    """

    def __init__(self, stages: Sequence[Stage]) -> None:
        self._stages = {stage.state: stage for stage in stages}
        missing = [state for state in STAGE_ORDER if state not in self._stages]
        if missing:
            names = ", ".join(state.value for state in missing)
            raise ValueError(f"Missing stages for states: {names}")
        self._state_listeners: list[StateChangeListener] = []
        self._completion_listeners: list[CompletionListener] = []
        self._error_listeners: list[ErrorListener] = []

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages[state] for state in STAGE_ORDER)

    def on_state_change(self, listener: StateChangeListener) -> None:
        self._state_listeners.append(listener)

    def on_completed(self, listener: CompletionListener) -> None:
        self._completion_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    async def run(self, context: PipelineContext) -> PipelineContext:
        while not context.current_state.terminal:
            state = context.current_state
            if state is PipelineState.INIT:
                self._fire(context, PipelineEvent.SUCCESS)
                continue

            stage = self._stages[state]
            try:
                report = await stage.run(context)
            except Exception as exc:  # noqa: BLE001
                error = _stage_error(stage.name, exc)
                context.errors.append(error)
                log.error("Stage %s failed for %s: %s", stage.name, context.scenario_hash, exc)
                self._fire(context, PipelineEvent.ERROR)
                self._notify(self._error_listeners, error, context)
            else:
                context.reports[stage.name] = report
                self._fire(context, PipelineEvent.SUCCESS)

        if context.current_state is PipelineState.COMPLETED:
            log.info("Scenario %s completed", context.scenario_hash)
            self._notify(self._completion_listeners, context)
        return context

    def _fire(self, context: PipelineContext, event: PipelineEvent) -> None:
        previous = context.current_state
        context.current_state = next_state(previous, event)
        log.debug("%s: %s -> %s", context.scenario_hash, previous, context.current_state)
        self._notify(self._state_listeners, previous, context.current_state, context)

    @staticmethod
    def _notify(listeners: Sequence[Callable[..., None]], *args: object) -> None:
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                log.exception("Pipeline listener %r failed", listener)


def _stage_error(stage: str, exc: Exception) -> StageError:
    cause = exc.__cause__ if isinstance(exc, StageFailed) and exc.__cause__ else exc
    message = str(exc) or type(exc).__name__
    return StageError(
        stage=stage,
        code=f"{stage}_stage_failed",
        message=message,
        cause=cause.code if isinstance(cause, CivicOpsError) else type(cause).__name__,
    )
