# services/reconciler.py

"""
Two-way link maintenance between Task.assignedUser / Task.assignedUserName
and User.pendingTasks.

Every entry point runs after the primary write has succeeded and only issues
counterpart writes (set add, set remove, field overwrite). Those writes are
idempotent, so each is retried a bounded number of times; a write that still
fails is recorded on the returned report and never undoes anything.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from taskboard.config import RECONCILE_ATTEMPTS, RECONCILE_BACKOFF
from taskboard.db.store import TASKS, USERS, EntityStore
from taskboard.errors import ReconciliationError, StoreError
from taskboard.models.models import UNASSIGNED, Task, User

logger = logging.getLogger(__name__)

PENDING = "pendingTasks"


@dataclass
class ReconcileReport:
    writes: int = 0
    errors: List[ReconciliationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def warnings(self) -> List[str]:
        return [str(e) for e in self.errors]


class AssociationReconciler:
    def __init__(
        self,
        store: EntityStore,
        attempts: int = RECONCILE_ATTEMPTS,
        backoff: float = RECONCILE_BACKOFF,
    ):
        self.store = store
        self.attempts = max(1, attempts)
        self.backoff = backoff

    # ------------------------------------------------------------------
    # task events
    # ------------------------------------------------------------------

    async def on_task_created(self, task: Task) -> ReconcileReport:
        report = ReconcileReport()
        if task.is_pending:
            await self._add_pending(report, task.assignedUser, task.id)
        return report

    async def on_task_replaced(self, prev: Task, next: Task) -> ReconcileReport:
        """
        Removal from the previous owner is issued before the add to the next
        one. The new `completed` flag alone decides final membership; an
        unchanged owner with an unchanged flag issues no writes at all.
        """
        report = ReconcileReport()
        prev_owner, next_owner = prev.assignedUser, next.assignedUser
        owner_changed = prev_owner != next_owner

        if prev_owner and (owner_changed or (not prev.completed and next.completed)):
            await self._remove_pending(report, prev_owner, next.id)

        if next_owner and not next.completed and (owner_changed or prev.completed):
            await self._add_pending(report, next_owner, next.id)

        return report

    async def on_task_deleted(self, task: Task) -> ReconcileReport:
        report = ReconcileReport()
        if task.assignedUser:
            await self._remove_pending(report, task.assignedUser, task.id)
        return report

    # ------------------------------------------------------------------
    # user events
    # ------------------------------------------------------------------

    async def resolve_pending(self, requested_ids: Iterable[str]) -> List[Task]:
        """
        Keep only ids naming existing, not-completed tasks, in request order
        and without duplicates. Unknown and completed ids are dropped silently.

        Runs before the user is written, so store failures propagate.
        """
        wanted: List[str] = []
        for task_id in requested_ids:
            if task_id not in wanted:
                wanted.append(task_id)
        if not wanted:
            return []

        docs = await self.store.find_many(TASKS, {"_id": {"$in": wanted}})
        found = {doc["_id"]: Task.from_doc(doc) for doc in docs}
        retained = [found[i] for i in wanted if i in found and not found[i].completed]

        dropped = len(wanted) - len(retained)
        if dropped:
            logger.info("Dropped %d unknown or completed task id(s) from pendingTasks", dropped)
        return retained

    async def on_user_created(self, user: User, retained: List[Task]) -> ReconcileReport:
        report = ReconcileReport()
        for task in retained:
            await self._claim(report, task, user)
        return report

    async def on_user_replaced(self, prev: User, user: User, retained: List[Task]) -> ReconcileReport:
        """
        `user` is the stored replacement whose pendingTasks are the ids of
        `retained`. Tasks dropped from the pending set are unassigned when they
        still point at this user; newly listed tasks are claimed; a rename is
        copied to every task still assigned to the user.
        """
        report = ReconcileReport()
        keep = {t.id for t in retained}
        removed = set(prev.pendingTasks) - keep

        owned = await self._read(report, "find owned tasks", USERS, user.id,
                                 lambda: self.store.find_many(TASKS, {"assignedUser": user.id}))
        for doc in owned or []:
            task = Task.from_doc(doc)
            if task.id in keep:
                continue
            if task.id in removed or not task.completed:
                await self._unassign(report, task.id)
            elif task.assignedUserName != user.name:
                await self._set_fields(report, task.id, {"assignedUserName": user.name})

        for task in retained:
            await self._claim(report, task, user)
        return report

    async def on_user_deleted(self, user: User) -> ReconcileReport:
        report = ReconcileReport()
        owned = await self._read(report, "find owned tasks", USERS, user.id,
                                 lambda: self.store.find_many(TASKS, {"assignedUser": user.id}))
        for doc in owned or []:
            await self._unassign(report, doc["_id"])
        return report

    # ------------------------------------------------------------------
    # counterpart writes
    # ------------------------------------------------------------------

    async def _claim(self, report: ReconcileReport, task: Task, user: User) -> None:
        if task.assignedUser == user.id and task.assignedUserName == user.name:
            return
        if task.assignedUser and task.assignedUser != user.id:
            await self._remove_pending(report, task.assignedUser, task.id)
        await self._set_fields(report, task.id, {"assignedUser": user.id, "assignedUserName": user.name})

    async def _unassign(self, report: ReconcileReport, task_id: str) -> None:
        await self._set_fields(report, task_id, {"assignedUser": None, "assignedUserName": UNASSIGNED})

    async def _add_pending(self, report: ReconcileReport, user_id: str, task_id: str) -> None:
        await self._write(report, "add pending task", USERS, user_id,
                          lambda: self.store.add_to_set(USERS, user_id, PENDING, task_id))

    async def _remove_pending(self, report: ReconcileReport, user_id: str, task_id: str) -> None:
        await self._write(report, "remove pending task", USERS, user_id,
                          lambda: self.store.remove_from_set(USERS, user_id, PENDING, task_id))

    async def _set_fields(self, report: ReconcileReport, task_id: str, partial: dict) -> None:
        await self._write(report, "update assignment", TASKS, task_id,
                          lambda: self.store.update_fields(TASKS, task_id, partial))

    async def _write(self, report: ReconcileReport, action: str, kind: str, entity_id: str,
                     op: Callable[[], Awaitable[None]]) -> None:
        report.writes += 1
        await self._attempt(report, action, kind, entity_id, op)

    async def _read(self, report: ReconcileReport, action: str, kind: str, entity_id: str,
                    op: Callable[[], Awaitable[Any]]) -> Optional[Any]:
        return await self._attempt(report, action, kind, entity_id, op)

    async def _attempt(self, report: ReconcileReport, action: str, kind: str, entity_id: str,
                       op: Callable[[], Awaitable[Any]]) -> Optional[Any]:
        last: Optional[StoreError] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return await op()
            except StoreError as e:
                last = e
                if attempt < self.attempts:
                    logger.warning("%s on %s/%s failed (attempt %d/%d): %s",
                                   action, kind, entity_id, attempt, self.attempts, e)
                    await asyncio.sleep(self.backoff * attempt)

        err = ReconciliationError(action, kind, entity_id, last)
        logger.warning("Reconciliation incomplete: %s", err)
        report.errors.append(err)
        return None
