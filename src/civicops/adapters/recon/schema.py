"""Pydantic models describing the fact feed payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from civicops.domain.model import FactType


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class FeedBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RawFactPayload(FeedBaseModel):
    entity_id: str = Field(min_length=1)
    fact_type: FactType
    payload: dict[str, Any] = Field(default_factory=dict)
    source_url: str | None = None
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    _normalize_source_url = field_validator("source_url", mode="before")(_blank_to_none)

    @field_validator("fact_type", mode="before")
    @classmethod
    def _lower_fact_type(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class SearchResultPayload(FeedBaseModel):
    title: str
    link: str
    snippet: str = ""

    @field_validator("snippet", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value


class FactFeedResponse(FeedBaseModel):
    facts: list[RawFactPayload] = Field(default_factory=list)
    results: list[SearchResultPayload] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.facts and not self.results
