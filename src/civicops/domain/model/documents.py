"""Content-addressed document records."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentMetadata:
    original_length: int
    normalized_length: int
    created_at: datetime
    source_url: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DocumentFingerprint:
    doc_hash: str
    scenario_hash: str
    normalized_text: str
    metadata: DocumentMetadata

    def for_scenario(self, scenario_hash: str) -> DocumentFingerprint:
        """Return the same archived document as seen from another scenario."""
        if scenario_hash == self.scenario_hash:
            return self
        return replace(self, scenario_hash=scenario_hash)
