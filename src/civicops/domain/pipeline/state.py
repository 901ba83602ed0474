"""Pipeline states, events and the fixed transition table."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class PipelineState(StrEnum):
    INIT = "INIT"
    RECON = "RECON"
    CORRELATION = "CORRELATION"
    ANALYSIS = "ANALYSIS"
    ADVISORY = "ADVISORY"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES


class PipelineEvent(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_STATES: Final[frozenset[PipelineState]] = frozenset(
    {PipelineState.COMPLETED, PipelineState.ERROR}
)

TRANSITIONS: Final[dict[PipelineState, dict[PipelineEvent, PipelineState]]] = {
    PipelineState.INIT: {
        PipelineEvent.SUCCESS: PipelineState.RECON,
        PipelineEvent.ERROR: PipelineState.ERROR,
    },
    PipelineState.RECON: {
        PipelineEvent.SUCCESS: PipelineState.CORRELATION,
        PipelineEvent.ERROR: PipelineState.ERROR,
    },
    PipelineState.CORRELATION: {
        PipelineEvent.SUCCESS: PipelineState.ANALYSIS,
        PipelineEvent.ERROR: PipelineState.ERROR,
    },
    PipelineState.ANALYSIS: {
        PipelineEvent.SUCCESS: PipelineState.ADVISORY,
        PipelineEvent.ERROR: PipelineState.ERROR,
    },
    PipelineState.ADVISORY: {
        PipelineEvent.SUCCESS: PipelineState.COMPLETED,
        PipelineEvent.ERROR: PipelineState.ERROR,
    },
    PipelineState.COMPLETED: {},
    PipelineState.ERROR: {},
}

STAGE_ORDER: Final[tuple[PipelineState, ...]] = (
    PipelineState.RECON,
    PipelineState.CORRELATION,
    PipelineState.ANALYSIS,
    PipelineState.ADVISORY,
)


class InvalidTransition(RuntimeError):
    def __init__(self, state: PipelineState, event: PipelineEvent) -> None:
        super().__init__(f"No transition from {state} on {event}")
        self.state = state
        self.event = event


def next_state(state: PipelineState, event: PipelineEvent) -> PipelineState:
    try:
        return TRANSITIONS[state][event]
    except KeyError:
        raise InvalidTransition(state, event) from None
