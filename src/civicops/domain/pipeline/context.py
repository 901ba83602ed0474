"""Scenario-scoped context threaded through every pipeline stage."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .state import PipelineState

if TYPE_CHECKING:
    from collections.abc import Mapping

    from civicops.domain.model import DocumentFingerprint, GraphSet, RawFact, ScoredSet
    from civicops.domain.ports.advisory import Recommendation
    from civicops.domain.ports.sources import SourceQuery


def scenario_hash_for(subject: str, parameters: Mapping[str, str] | None = None) -> str:
    """Stable scenario id for a subject and its query parameters."""

    encoded = json.dumps(
        {"subject": subject.strip().lower(), "parameters": dict(parameters or {})},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class StageError:
    stage: str
    code: str
    message: str
    cause: str | None = None


@dataclass(slots=True)
class PipelineData:
    """Stage inputs and outputs, filled in pipeline order."""

    query: SourceQuery | None = None
    facts: list[RawFact] = field(default_factory=list["RawFact"])
    documents: list[DocumentFingerprint] = field(default_factory=list["DocumentFingerprint"])
    graph: GraphSet | None = None
    scored: ScoredSet | None = None
    recommendations: list[Recommendation] = field(default_factory=list["Recommendation"])


@dataclass(slots=True)
class PipelineContext:
    """Owned by one in-flight run; discarded once the run reaches a terminal state."""

    scenario_hash: str
    current_state: PipelineState = PipelineState.INIT
    data: PipelineData = field(default_factory=PipelineData)
    errors: list[StageError] = field(default_factory=list[StageError])
    reports: dict[str, dict[str, Any]] = field(default_factory=dict[str, "dict[str, Any]"])
    attempts: dict[str, int] = field(default_factory=dict[str, int])
