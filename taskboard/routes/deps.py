# routes/deps.py

from fastapi import Depends, Request

from taskboard.db.store import EntityStore
from taskboard.services.locks import KeyedLocks
from taskboard.services.reconciler import AssociationReconciler
from taskboard.services.task_service import TaskService
from taskboard.services.user_service import UserService


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_locks(request: Request) -> KeyedLocks:
    return request.app.state.locks


def get_reconciler(store: EntityStore = Depends(get_store)) -> AssociationReconciler:
    return AssociationReconciler(store)


def get_task_service(
    store: EntityStore = Depends(get_store),
    reconciler: AssociationReconciler = Depends(get_reconciler),
    locks: KeyedLocks = Depends(get_locks),
) -> TaskService:
    return TaskService(store, reconciler, locks)


def get_user_service(
    store: EntityStore = Depends(get_store),
    reconciler: AssociationReconciler = Depends(get_reconciler),
    locks: KeyedLocks = Depends(get_locks),
) -> UserService:
    return UserService(store, reconciler, locks)
