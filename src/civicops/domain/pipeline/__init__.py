"""Pipeline orchestration: state machine, stages, retrying coordinator."""

from __future__ import annotations

from .advisory import FlaggedEntityAdvisor
from .context import PipelineContext, PipelineData, StageError, scenario_hash_for
from .coordinator import (
    FailureRecord,
    PipelineCoordinator,
    PipelineResult,
    RetryingStage,
    StageStatus,
)
from .machine import PipelineStateMachine
from .stages import AdvisoryStage, AnalysisStage, CorrelationStage, ReconStage, Stage
from .state import (
    STAGE_ORDER,
    TRANSITIONS,
    InvalidTransition,
    PipelineEvent,
    PipelineState,
    next_state,
)

__all__ = [
    "STAGE_ORDER",
    "TRANSITIONS",
    "AdvisoryStage",
    "AnalysisStage",
    "CorrelationStage",
    "FailureRecord",
    "FlaggedEntityAdvisor",
    "InvalidTransition",
    "PipelineContext",
    "PipelineCoordinator",
    "PipelineData",
    "PipelineEvent",
    "PipelineResult",
    "PipelineState",
    "PipelineStateMachine",
    "ReconStage",
    "RetryingStage",
    "Stage",
    "StageError",
    "StageStatus",
    "next_state",
    "scenario_hash_for",
]
