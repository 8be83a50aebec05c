# db/store.py

from __future__ import annotations

"""
Entity store port.

Services and the reconciler depend on this Protocol rather than on Mongo, so
the in-memory store used by the tests can stand in for it.
Every method is atomic for the single document it touches, never across documents.
"""

from typing import Any, Protocol

from taskboard.services.query import ListQuery

TASKS = "tasks"
USERS = "users"
KINDS = (TASKS, USERS)


class EntityStore(Protocol):
    async def get(self, kind: str, entity_id: str) -> dict[str, Any] | None: ...

    async def create(self, kind: str, fields: dict[str, Any]) -> dict[str, Any]: ...

    async def replace(self, kind: str, entity_id: str, fields: dict[str, Any]) -> dict[str, Any] | None: ...

    async def delete(self, kind: str, entity_id: str) -> dict[str, Any] | None: ...

    async def add_to_set(self, kind: str, entity_id: str, field: str, value: Any) -> None: ...

    async def remove_from_set(self, kind: str, entity_id: str, field: str, value: Any) -> None: ...

    async def update_fields(self, kind: str, entity_id: str, partial: dict[str, Any]) -> None: ...

    async def find_many(self, kind: str, filter: dict[str, Any]) -> list[dict[str, Any]]: ...

    async def find(self, kind: str, query: ListQuery) -> list[dict[str, Any]]: ...

    async def count(self, kind: str, filter: dict[str, Any]) -> int: ...
