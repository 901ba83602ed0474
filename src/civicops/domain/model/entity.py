"""Canonical entity records held by the entity index."""

from __future__ import annotations

from dataclasses import dataclass, field

ID_SEPARATOR = ":"


def format_identifier(id_type: str, value: str) -> str:
    return f"{id_type}{ID_SEPARATOR}{value}"


def split_identifier(identifier: str) -> tuple[str, str]:
    """Split ``"type:value"`` into its parts; values may themselves contain colons."""

    id_type, separator, value = identifier.partition(ID_SEPARATOR)
    if not separator or not id_type or not value:
        raise ValueError(f"Malformed identifier: {identifier!r}")
    return id_type, value


@dataclass(slots=True, kw_only=True)
class CanonicalEntity:
    """Deduplicated, identifier-resolved representation of a real-world actor."""

    entity_key: str
    primary_id: str
    alt_ids: tuple[str, ...] = ()
    name_norm: str = ""
    jurisdiction: str | None = None

    @property
    def identifiers(self) -> dict[str, str]:
        """Identifier map recovered from ``primary_id`` and ``alt_ids``."""

        pairs = (split_identifier(item) for item in (self.primary_id, *self.alt_ids))
        return dict(pairs)


@dataclass(slots=True, kw_only=True)
class EntityPatch:
    """Partial update merged into an existing entity (never a replacement)."""

    identifiers: dict[str, str] = field(default_factory=dict[str, str])
    name_norm: str | None = None
    jurisdiction: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.identifiers and self.name_norm is None and self.jurisdiction is None


@dataclass(frozen=True, slots=True)
class EntityCollision:
    """Two distinct identifier sets that produced the same entity key."""

    entity_key: str
    identifier_sets: tuple[tuple[tuple[str, str], ...], ...]
