# services/user_service.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from taskboard.db.store import TASKS, USERS, EntityStore
from taskboard.errors import DuplicateError, NotFoundError, ValidationError
from taskboard.models.models import User, UserIn
from taskboard.services.locks import KeyedLocks, entity_key
from taskboard.services.query import ListQuery
from taskboard.services.reconciler import AssociationReconciler, ReconcileReport

logger = logging.getLogger(__name__)


class UserService:
    default_limit = None  # users are listed unpaginated unless asked

    def __init__(self, store: EntityStore, reconciler: AssociationReconciler, locks: KeyedLocks):
        self.store = store
        self.reconciler = reconciler
        self.locks = locks

    async def list(self, query: ListQuery) -> Union[List[Dict[str, Any]], int]:
        if query.count:
            return await self.store.count(USERS, query.where)
        return await self.store.find(USERS, query)

    async def get(self, user_id: str, select: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        docs = await self.store.find(USERS, ListQuery(where={"_id": user_id}, select=select, limit=1))
        if not docs:
            raise NotFoundError(USERS, user_id)
        return docs[0]

    async def create(self, body: UserIn) -> Tuple[User, ReconcileReport]:
        async with self.locks.hold(*_task_keys(body.pendingTasks)):
            await self._ensure_email_free(body.email)
            retained = await self.reconciler.resolve_pending(body.pendingTasks)
            try:
                doc = await self.store.create(USERS, {
                    "name": body.name,
                    "email": body.email,
                    "pendingTasks": [t.id for t in retained],
                    "dateCreated": datetime.now(timezone.utc),
                })
            except DuplicateError:
                raise ValidationError("email already exists")
            user = User.from_doc(doc)
            logger.info("Created user %s with %d pending task(s)", user.id, len(user.pendingTasks))
            report = await self.reconciler.on_user_created(user, retained)
        return user, report

    async def replace(self, user_id: str, body: UserIn) -> Tuple[User, ReconcileReport]:
        # Unlocked peek to learn which tasks the replacement may touch; the
        # authoritative previous snapshot is re-read under the locks.
        peek = await self.store.get(USERS, user_id)
        if peek is None:
            raise NotFoundError(USERS, user_id)
        touched = list(body.pendingTasks) + list(peek.get("pendingTasks", []))

        async with self.locks.hold(*_task_keys(touched), entity_key(USERS, user_id)):
            prev_doc = await self.store.get(USERS, user_id)
            if prev_doc is None:
                raise NotFoundError(USERS, user_id)
            prev = User.from_doc(prev_doc)

            await self._ensure_email_free(body.email, exclude_id=user_id)
            retained = await self.reconciler.resolve_pending(body.pendingTasks)
            try:
                doc = await self.store.replace(USERS, user_id, {
                    "name": body.name,
                    "email": body.email,
                    "pendingTasks": [t.id for t in retained],
                    "dateCreated": prev.dateCreated,
                })
            except DuplicateError:
                raise ValidationError("email already exists")
            if doc is None:
                raise NotFoundError(USERS, user_id)
            user = User.from_doc(doc)
            logger.info("Replaced user %s (%d -> %d pending task(s))",
                        user.id, len(prev.pendingTasks), len(user.pendingTasks))
            report = await self.reconciler.on_user_replaced(prev, user, retained)
        return user, report

    async def delete(self, user_id: str) -> Tuple[User, ReconcileReport]:
        async with self.locks.hold(entity_key(USERS, user_id)):
            doc = await self.store.delete(USERS, user_id)
            if doc is None:
                raise NotFoundError(USERS, user_id)
            user = User.from_doc(doc)
            logger.info("Deleted user %s", user.id)
            report = await self.reconciler.on_user_deleted(user)
        return user, report

    async def _ensure_email_free(self, email: str, exclude_id: Optional[str] = None) -> None:
        flt: Dict[str, Any] = {"email": email}
        if exclude_id is not None:
            flt["_id"] = {"$ne": exclude_id}
        if await self.store.find_many(USERS, flt):
            raise ValidationError("email already exists")


def _task_keys(task_ids: Iterable[str]) -> List[str]:
    return [entity_key(TASKS, t) for t in task_ids]
