# services/task_service.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from taskboard.config import TASKS_DEFAULT_LIMIT
from taskboard.db.store import TASKS, USERS, EntityStore
from taskboard.errors import NotFoundError
from taskboard.models.models import UNASSIGNED, Task, TaskIn, User
from taskboard.services.locks import KeyedLocks, entity_key
from taskboard.services.query import ListQuery
from taskboard.services.reconciler import AssociationReconciler, ReconcileReport

logger = logging.getLogger(__name__)

# Lock order everywhere: task keys first, then user keys ("tasks:" < "users:").


class TaskService:
    default_limit = TASKS_DEFAULT_LIMIT

    def __init__(self, store: EntityStore, reconciler: AssociationReconciler, locks: KeyedLocks):
        self.store = store
        self.reconciler = reconciler
        self.locks = locks

    async def list(self, query: ListQuery) -> Union[List[Dict[str, Any]], int]:
        if query.count:
            return await self.store.count(TASKS, query.where)
        return await self.store.find(TASKS, query)

    async def get(self, task_id: str, select: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        docs = await self.store.find(TASKS, ListQuery(where={"_id": task_id}, select=select, limit=1))
        if not docs:
            raise NotFoundError(TASKS, task_id)
        return docs[0]

    async def create(self, body: TaskIn) -> Tuple[Task, ReconcileReport]:
        async with self.locks.hold(*self._user_keys(body.assignedUser)):
            assignee = await self._resolve_assignee(body.assignedUser)
            doc = await self.store.create(TASKS, {
                "name": body.name,
                "description": body.description or "",
                "deadline": body.deadline,
                "completed": body.completed,
                "assignedUser": assignee.id if assignee else None,
                "assignedUserName": assignee.name if assignee else UNASSIGNED,
                "dateCreated": datetime.now(timezone.utc),
            })
            task = Task.from_doc(doc)
            logger.info("Created task %s (assignedUser=%s)", task.id, task.assignedUser)
            report = await self.reconciler.on_task_created(task)
        return task, report

    async def replace(self, task_id: str, body: TaskIn) -> Tuple[Task, ReconcileReport]:
        async with self.locks.hold(entity_key(TASKS, task_id)):
            prev_doc = await self.store.get(TASKS, task_id)
            if prev_doc is None:
                raise NotFoundError(TASKS, task_id)
            prev = Task.from_doc(prev_doc)

            async with self.locks.hold(*self._user_keys(prev.assignedUser, body.assignedUser)):
                assignee = await self._resolve_assignee(body.assignedUser)
                doc = await self.store.replace(TASKS, task_id, {
                    "name": body.name,
                    "description": prev.description if body.description is None else body.description,
                    "deadline": body.deadline,
                    "completed": body.completed,
                    "assignedUser": assignee.id if assignee else None,
                    "assignedUserName": assignee.name if assignee else UNASSIGNED,
                    "dateCreated": prev.dateCreated,
                })
                if doc is None:
                    raise NotFoundError(TASKS, task_id)
                task = Task.from_doc(doc)
                logger.info("Replaced task %s (assignedUser %s -> %s, completed %s -> %s)",
                            task.id, prev.assignedUser, task.assignedUser, prev.completed, task.completed)
                report = await self.reconciler.on_task_replaced(prev, task)
        return task, report

    async def delete(self, task_id: str) -> Tuple[Task, ReconcileReport]:
        async with self.locks.hold(entity_key(TASKS, task_id)):
            doc = await self.store.delete(TASKS, task_id)
            if doc is None:
                raise NotFoundError(TASKS, task_id)
            task = Task.from_doc(doc)
            logger.info("Deleted task %s", task.id)
            async with self.locks.hold(*self._user_keys(task.assignedUser)):
                report = await self.reconciler.on_task_deleted(task)
        return task, report

    async def _resolve_assignee(self, user_id: Optional[str]) -> Optional[User]:
        if user_id is None:
            return None
        doc = await self.store.get(USERS, user_id)
        if doc is None:
            raise NotFoundError(USERS, user_id, "assignedUser does not exist", referenced=True)
        return User.from_doc(doc)

    @staticmethod
    def _user_keys(*user_ids: Optional[str]) -> List[str]:
        return [entity_key(USERS, u) for u in user_ids if u]
