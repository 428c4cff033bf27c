"""Tests for the abstract Repository base."""

from typing import Any, Mapping

import pytest

from campaign_cache.entities import FundraisingEvent
from campaign_cache.models import fundraising_event
from campaign_cache.repository import Repository
from campaign_cache.repository.repository import Row


def test_base_repository_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Repository(database=None)


def test_subclass_without_from_row_rejected():
    class HalfRepository(Repository[FundraisingEvent]):
        table = fundraising_event
        unique_key = ("slug", "causeSlug")

        def to_row(self, entity: FundraisingEvent) -> Row:
            return {"id": entity.id}

    with pytest.raises(TypeError, match="from_row"):
        HalfRepository(database=None)


def test_complete_subclass_can_be_instantiated():
    class RowsOnly(Repository[dict]):
        table = fundraising_event
        unique_key = ("slug", "causeSlug")

        def to_row(self, entity: dict) -> Row:
            return dict(entity)

        def from_row(self, row: Mapping[str, Any]) -> dict:
            return dict(row)

    repository = RowsOnly(database=None)

    assert "causeSlug" in repository.columns
