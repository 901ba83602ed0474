"""Deterministic identity resolution for raw identifier sets.

The entity key is a SHA-256 digest over the sorted, compact JSON encoding of every
known identifier, so the key never depends on the order in which identifiers (or the
facts carrying them) arrive. ``primary_id`` and ``alt_ids`` keep exactly the same
information, which makes the key re-derivable from a stored entity at any time.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections import defaultdict
from logging import getLogger
from typing import TYPE_CHECKING, Final

from civicops.domain.model import (
    CanonicalEntity,
    EntityCollision,
    format_identifier,
    split_identifier,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from civicops.domain.entity_index import EntityIndex

log = getLogger(__name__)

PRIMARY_ID_PRIORITY: Final[tuple[str, ...]] = ("ein", "cik", "uei", "fec_id", "lei", "duns")
RAW_ID_TYPE: Final[str] = "raw"

_PUNCTUATION = re.compile(r"[^\w\s]")


def clean_identifiers(identifiers: Mapping[str, object | None]) -> dict[str, str]:
    """Drop null/blank identifiers and lower-case identifier types."""

    cleaned: dict[str, str] = {}
    for id_type, value in identifiers.items():
        if value is None:
            continue
        type_name = id_type.strip().lower()
        text = str(value).strip()
        if not type_name or not text:
            continue
        if ":" in type_name:
            raise ValueError(f"Identifier type may not contain ':': {id_type!r}")
        cleaned[type_name] = text
    return cleaned


def entity_key_for(identifiers: Mapping[str, object | None]) -> str:
    cleaned = clean_identifiers(identifiers)
    if not cleaned:
        raise ValueError("At least one non-blank identifier is required")
    encoded = json.dumps(cleaned, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def normalize_name(name: str) -> str:
    tokens = _PUNCTUATION.sub("", name.lower()).split()
    return "_".join(tokens)


def select_primary_type(identifiers: Mapping[str, str]) -> str:
    for id_type in PRIMARY_ID_PRIORITY:
        if id_type in identifiers:
            return id_type
    return min(identifiers)


def parse_entity_id(raw: str) -> dict[str, str]:
    """Parse ``"EIN:12-3456789"`` style ids; several ids may be joined with ``|``."""

    identifiers: dict[str, str] = {}
    for part in raw.split("|"):
        text = part.strip()
        if not text:
            continue
        id_type, separator, value = text.partition(":")
        if separator and id_type.strip() and value.strip():
            identifiers[id_type.strip().lower()] = value.strip()
        else:
            identifiers[RAW_ID_TYPE] = text
    return identifiers


def build_entity(
    name: str | None,
    identifiers: Mapping[str, object | None],
    jurisdiction: str | None = None,
) -> CanonicalEntity:
    cleaned = clean_identifiers(identifiers)
    entity_key = entity_key_for(cleaned)
    primary_type = select_primary_type(cleaned)
    alt_ids = tuple(
        sorted(
            format_identifier(id_type, value)
            for id_type, value in cleaned.items()
            if id_type != primary_type
        )
    )
    return CanonicalEntity(
        entity_key=entity_key,
        primary_id=format_identifier(primary_type, cleaned[primary_type]),
        alt_ids=alt_ids,
        name_norm=normalize_name(name or ""),
        jurisdiction=jurisdiction,
    )


def detect_collisions(entities: Iterable[CanonicalEntity]) -> list[EntityCollision]:
    """Report keys shared by entities with different identifier sets."""

    by_key: defaultdict[str, set[tuple[tuple[str, str], ...]]] = defaultdict(set)
    for entity in entities:
        by_key[entity.entity_key].add(tuple(sorted(entity.identifiers.items())))
    collisions = [
        EntityCollision(entity_key=key, identifier_sets=tuple(sorted(sets)))
        for key, sets in sorted(by_key.items())
        if len(sets) > 1
    ]
    for collision in collisions:
        log.warning("Entity key collision on %s", collision.entity_key)
    return collisions


def validate_deterministic_keys(entities: Iterable[CanonicalEntity]) -> bool:
    """Regenerate every key from its own stored identifiers and compare."""

    valid = True
    for entity in entities:
        try:
            identifiers = dict(
                split_identifier(item) for item in (entity.primary_id, *entity.alt_ids)
            )
            regenerated = entity_key_for(identifiers)
        except ValueError:
            log.exception("Entity %s has malformed identifiers", entity.entity_key)
            valid = False
            continue
        if regenerated != entity.entity_key:
            log.error(
                "Entity key mismatch: stored=%s regenerated=%s", entity.entity_key, regenerated
            )
            valid = False
    return valid


class IdentityLinker:
    """Resolve names and identifier sets into canonical entities held by the index."""

    def __init__(self, index: EntityIndex) -> None:
        self.index = index

    def canonicalize(
        self,
        name: str | None,
        identifiers: Mapping[str, object | None],
        jurisdiction: str | None = None,
    ) -> CanonicalEntity:
        candidate = build_entity(name, identifiers, jurisdiction)
        return self.index.create_or_update(candidate)

    def resolve(self, raw_id: str, *, name: str | None = None) -> CanonicalEntity:
        """Canonicalize an entity id as it appears on raw facts."""

        identifiers = parse_entity_id(raw_id)
        return self.canonicalize(name, identifiers)

    def detect_collisions(self, entities: Iterable[CanonicalEntity]) -> list[EntityCollision]:
        return detect_collisions(entities)

    def validate_deterministic_keys(self, entities: Iterable[CanonicalEntity] | None = None) -> bool:
        return validate_deterministic_keys(self.index.all() if entities is None else entities)
