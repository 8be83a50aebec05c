# routes/tasks.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from taskboard.models.models import TaskIn
from taskboard.routes.deps import get_task_service
from taskboard.routes.resp import ok
from taskboard.services.query import parse_list_query, parse_select
from taskboard.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("")
async def list_tasks(request: Request, service: TaskService = Depends(get_task_service)):
    """List tasks. Supports where/sort/select/skip/limit/count; default limit is 100."""
    query = parse_list_query(request.query_params, default_limit=service.default_limit)
    return ok(await service.list(query))


@router.post("")
async def create_task(body: TaskIn, service: TaskService = Depends(get_task_service)):
    task, report = await service.create(body)
    return ok(task.to_doc(), 201, report)


@router.get("/{task_id}")
async def get_task(
    task_id: str,
    select: Optional[str] = Query(None),
    service: TaskService = Depends(get_task_service),
):
    return ok(await service.get(task_id, parse_select(select)))


@router.put("/{task_id}")
async def replace_task(task_id: str, body: TaskIn, service: TaskService = Depends(get_task_service)):
    task, report = await service.replace(task_id, body)
    return ok(task.to_doc(), 200, report)


@router.delete("/{task_id}")
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)):
    task, report = await service.delete(task_id)
    return ok(task.to_doc(), 200, report)
