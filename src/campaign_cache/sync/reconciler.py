"""Merge newly observed entities into the cache with minimal writes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar, Union
from uuid import UUID

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_cache.db import Database
from campaign_cache.entities import Campaign, FundraisingEvent
from campaign_cache.exceptions import RecordNotFoundError
from campaign_cache.repository import CampaignRepository, FundraisingEventRepository, Repository
from campaign_cache.sync.diff import changed_values, diff_columns

E = TypeVar("E", FundraisingEvent, Campaign)


class Outcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult(Generic[E]):
    """What reconciling one entity did to the store."""

    outcome: Outcome
    entity: E
    changed_columns: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.outcome != Outcome.UNCHANGED


class Reconciler:
    """Writes only what changed between a stored entity and its new value.

    Every operation runs as a single writer transaction, so the comparison and
    the write see the same baseline.
    """

    def __init__(
        self,
        database: Database,
        event_repository: FundraisingEventRepository,
        campaign_repository: CampaignRepository,
    ):
        self.database = database
        self._repositories: Dict[Type, Repository] = {
            FundraisingEvent: event_repository,
            Campaign: campaign_repository,
        }

    def _repository_for(self, entity: Union[FundraisingEvent, Campaign]) -> Repository:
        return self._repository_for_type(type(entity))

    def _repository_for_type(self, entity_type: Type) -> Repository:
        try:
            return self._repositories[entity_type]
        except KeyError:
            raise TypeError(f"Cannot reconcile {entity_type.__name__}") from None

    async def reconcile(self, entity: E) -> ReconcileResult[E]:
        """Insert the entity, or update the columns that differ from the stored row.

        The stored baseline is read inside the writer transaction.

        Raises:
            ConstraintViolationError: If the write breaks a constraint
        """
        repository = self._repository_for(entity)
        return await self._reconcile(repository, entity.id, lambda stored: entity)

    async def reconcile_with(
        self, entity_type: Type[E], id: UUID, build: Callable[[Optional[E]], E]
    ) -> ReconcileResult[E]:
        """Build the new value from the row stored under ``id`` and reconcile it.

        ``build`` receives the stored entity (or None) read inside the writer
        transaction, so fields it carries over from the stored row cannot be
        stale. Its result is inserted when nothing is stored, else diffed.

        Raises:
            ConstraintViolationError: If the write breaks a constraint
        """
        return await self._reconcile(self._repository_for_type(entity_type), id, build)

    async def _reconcile(
        self, repository: Repository, id: UUID, build: Callable[[Optional[E]], E]
    ) -> ReconcileResult[E]:
        async with self.database.write() as session:
            previous = await repository.find_by_id(id, session)
            entity = build(previous)
            if previous is None:
                await repository.save(entity, session)
                logger.debug(f"Created {repository.table.name} {entity.id}")
                return ReconcileResult(Outcome.CREATED, entity)
            return await self._apply_diff(repository, entity, previous, session)

    async def update_changes(self, new: E, old: E) -> ReconcileResult[E]:
        """Update the columns where ``new`` differs from the caller's baseline ``old``.

        Returns:
            UNCHANGED without touching the store when nothing differs

        Raises:
            RecordNotFoundError: If no row with ``new.id`` exists at write time
            ConstraintViolationError: If the write breaks a constraint
        """
        repository = self._repository_for(new)
        async with self.database.write() as session:
            return await self._apply_diff(repository, new, old, session)

    async def update_stored(self, new: E) -> ReconcileResult[E]:
        """Update the columns where ``new`` differs from the row stored under its id.

        Unlike ``update_changes`` the baseline is read inside the writer
        transaction, so a write committed since the caller last looked is not
        mistaken for an unchanged column.

        Raises:
            RecordNotFoundError: If no row with ``new.id`` exists
            ConstraintViolationError: If the write breaks a constraint
        """
        repository = self._repository_for(new)
        async with self.database.write() as session:
            stored = await repository.find_by_id(new.id, session)
            if stored is None:
                raise RecordNotFoundError(repository.table.name, new.id)
            return await self._apply_diff(repository, new, stored, session)

    async def save(self, entity: E) -> ReconcileResult[E]:
        """Full insert-or-replace, used when no previous value is known."""
        repository = self._repository_for(entity)
        await repository.save(entity)
        return ReconcileResult(Outcome.CREATED, entity)

    async def _apply_diff(
        self,
        repository: Repository,
        new: E,
        old: E,
        session: AsyncSession,
    ) -> ReconcileResult[E]:
        new_row = repository.to_row(new)
        columns = diff_columns(new_row, repository.to_row(old))
        if not columns:
            logger.debug(f"{repository.table.name} {new.id} unchanged")
            return ReconcileResult(Outcome.UNCHANGED, new)

        await repository.update_columns(new.id, changed_values(new_row, columns), session)
        logger.debug(f"Updated {repository.table.name} {new.id}: {columns}")
        return ReconcileResult(Outcome.UPDATED, new, columns)
