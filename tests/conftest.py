# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from taskboard.db.store import TASKS, USERS
from taskboard.main import app
from taskboard.models.models import UNASSIGNED, Task, User
from taskboard.routes.deps import get_locks, get_reconciler, get_store
from taskboard.services.locks import KeyedLocks
from taskboard.services.reconciler import AssociationReconciler
from taskboard.services.task_service import TaskService
from taskboard.services.user_service import UserService

from .fakes import InMemoryEntityStore

DEADLINE = datetime(2030, 1, 1, tzinfo=timezone.utc)
CREATED = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture()
def reconciler(store: InMemoryEntityStore) -> AssociationReconciler:
    # two attempts, no sleeping between them
    return AssociationReconciler(store, attempts=2, backoff=0)


@pytest.fixture()
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture()
def task_service(store, reconciler, locks) -> TaskService:
    return TaskService(store, reconciler, locks)


@pytest.fixture()
def user_service(store, reconciler, locks) -> UserService:
    return UserService(store, reconciler, locks)


@pytest.fixture()
def client(store: InMemoryEntityStore, reconciler: AssociationReconciler, locks: KeyedLocks):
    """
    TestClient wired to the in-memory store.

    Not entered as a context manager, so the Mongo lifespan never runs.
    """
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_locks] = lambda: locks
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---- seeding helpers (write straight to the store, no reconciliation) ----


async def seed_user(store: InMemoryEntityStore, name: str = "Ann", pending: list[str] | None = None,
                    email: str | None = None) -> User:
    doc = await store.create(USERS, {
        "name": name,
        "email": email or f"{name.lower()}@example.com",
        "pendingTasks": list(pending or []),
        "dateCreated": CREATED,
    })
    return User.from_doc(doc)


async def seed_task(store: InMemoryEntityStore, name: str = "t", owner: User | None = None,
                    completed: bool = False) -> Task:
    doc = await store.create(TASKS, {
        "name": name,
        "description": "",
        "deadline": DEADLINE,
        "completed": completed,
        "assignedUser": owner.id if owner else None,
        "assignedUserName": owner.name if owner else UNASSIGNED,
        "dateCreated": CREATED,
    })
    return Task.from_doc(doc)


def check_invariants(store: InMemoryEntityStore) -> list[str]:
    """Return every violation of the task/user link invariants (empty when consistent)."""
    problems: list[str] = []
    tasks: dict[str, dict[str, Any]] = store.data[TASKS]
    users: dict[str, dict[str, Any]] = store.data[USERS]

    for t in tasks.values():
        owner = t.get("assignedUser")
        holders = [u["_id"] for u in users.values() if t["_id"] in u.get("pendingTasks", [])]
        if owner and not t["completed"]:
            if owner not in users:
                problems.append(f"{t['_id']} assigned to missing user {owner}")
            elif t["_id"] not in users[owner]["pendingTasks"]:
                problems.append(f"{t['_id']} missing from {owner}.pendingTasks")
        if (t["completed"] or owner is None) and holders:
            problems.append(f"{t['_id']} stale in pendingTasks of {holders}")
        if len(holders) > 1:
            problems.append(f"{t['_id']} pending under several users {holders}")
        if owner is None and t["assignedUserName"] != UNASSIGNED:
            problems.append(f"{t['_id']} unassigned but named {t['assignedUserName']}")
        if owner in users and t["assignedUserName"] != users[owner]["name"]:
            problems.append(f"{t['_id']} assignedUserName out of sync")

    for u in users.values():
        if len(set(u["pendingTasks"])) != len(u["pendingTasks"]):
            problems.append(f"{u['_id']} has duplicate pendingTasks")
        for k in u["pendingTasks"]:
            t = tasks.get(k)
            if t is None or t.get("assignedUser") != u["_id"] or t["completed"]:
                problems.append(f"{u['_id']}.pendingTasks holds invalid {k}")
    return problems
