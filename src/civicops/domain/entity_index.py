"""Single canonical registry of resolved entities.

Writers hold the index lock for the whole read-check-write sequence; readers go
straight to the repository.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from civicops.domain.errors import (
    EntityCollisionError,
    EntityExistsError,
    EntityNotFoundError,
    KeyIntegrityError,
)
from civicops.domain.identity import build_entity
from civicops.domain.model import CanonicalEntity, EntityCollision, EntityPatch, format_identifier
from civicops.domain.ports.persistence import StoreUnitOfWork

if TYPE_CHECKING:
    from civicops.domain.ports.persistence import IndexLock

UnitOfWorkFactory = Callable[[], StoreUnitOfWork]

log = getLogger(__name__)


class EntityIndex:
    def __init__(self, unit_of_work_factory: UnitOfWorkFactory, lock: IndexLock) -> None:
        self._uow_factory = unit_of_work_factory
        self._lock = lock

    # reads -------------------------------------------------------------------

    def get(self, entity_key: str) -> CanonicalEntity | None:
        with self._uow_factory() as uow:
            return uow.repositories.entities.get(entity_key)

    def all(self) -> list[CanonicalEntity]:
        with self._uow_factory() as uow:
            return uow.repositories.entities.list_all()

    def search_by_jurisdiction(self, jurisdiction: str) -> list[CanonicalEntity]:
        with self._uow_factory() as uow:
            return uow.repositories.entities.list_by_jurisdiction(jurisdiction)

    def search_by_name(self, pattern: str) -> list[CanonicalEntity]:
        regex = re.compile(pattern, re.IGNORECASE)
        return [entity for entity in self.all() if regex.search(entity.name_norm)]

    def search_by_alt_id(self, id_type: str, value: str) -> list[CanonicalEntity]:
        wanted = format_identifier(id_type.strip().lower(), value.strip())
        return [
            entity
            for entity in self.all()
            if entity.primary_id == wanted or wanted in entity.alt_ids
        ]

    # writes ------------------------------------------------------------------

    def create(self, entity: CanonicalEntity) -> CanonicalEntity:
        with self._lock.hold(), self._uow_factory() as uow:
            entities = uow.repositories.entities
            if entities.get(entity.entity_key) is not None:
                raise EntityExistsError(entity.entity_key)
            entities.add(entity)
            uow.commit()
        log.debug("Created entity %s (%s)", entity.entity_key, entity.primary_id)
        return entity

    def update(self, entity_key: str, patch: EntityPatch) -> CanonicalEntity:
        with self._lock.hold(), self._uow_factory() as uow:
            entities = uow.repositories.entities
            existing = entities.get(entity_key)
            if existing is None:
                raise EntityNotFoundError(entity_key)
            merged = _apply_patch(existing, patch)
            if merged != existing:
                entities.save(merged)
                uow.commit()
        return merged

    def create_or_update(self, entity: CanonicalEntity) -> CanonicalEntity:
        """Create the entity, or merge its name/jurisdiction into the stored one."""

        with self._lock.hold(), self._uow_factory() as uow:
            entities = uow.repositories.entities
            existing = entities.get(entity.entity_key)
            if existing is None:
                entities.add(entity)
                uow.commit()
                return entity
            _ensure_same_identity(existing, entity)
            merged = _apply_patch(
                existing,
                EntityPatch(
                    name_norm=entity.name_norm or None,
                    jurisdiction=entity.jurisdiction,
                ),
                fill_only=True,
            )
            if merged != existing:
                entities.save(merged)
                uow.commit()
            return merged

    def delete(self, entity_key: str) -> None:
        with self._lock.hold(), self._uow_factory() as uow:
            entities = uow.repositories.entities
            if entities.get(entity_key) is None:
                raise EntityNotFoundError(entity_key)
            entities.remove(entity_key)
            uow.commit()


def _ensure_same_identity(existing: CanonicalEntity, candidate: CanonicalEntity) -> None:
    if existing.identifiers != candidate.identifiers:
        raise EntityCollisionError(
            EntityCollision(
                entity_key=existing.entity_key,
                identifier_sets=(
                    tuple(sorted(existing.identifiers.items())),
                    tuple(sorted(candidate.identifiers.items())),
                ),
            )
        )


def _apply_patch(
    existing: CanonicalEntity,
    patch: EntityPatch,
    *,
    fill_only: bool = False,
) -> CanonicalEntity:
    if patch.is_empty:
        return existing

    merged = existing
    if patch.identifiers:
        identifiers = {**existing.identifiers, **patch.identifiers}
        rebuilt = build_entity(None, identifiers)
        if rebuilt.entity_key != existing.entity_key:
            # identifiers that change the key describe a different canonical entity
            raise KeyIntegrityError(
                f"Patch would re-key {existing.entity_key} to {rebuilt.entity_key}"
            )
        merged = replace(merged, primary_id=rebuilt.primary_id, alt_ids=rebuilt.alt_ids)
    if patch.name_norm and patch.name_norm != merged.name_norm:
        if not fill_only or not merged.name_norm:
            merged = replace(merged, name_norm=patch.name_norm)
    if patch.jurisdiction and patch.jurisdiction != merged.jurisdiction:
        if not fill_only or not merged.jurisdiction:
            merged = replace(merged, jurisdiction=patch.jurisdiction)
    return merged

