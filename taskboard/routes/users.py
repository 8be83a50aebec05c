# routes/users.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from taskboard.models.models import UserIn
from taskboard.routes.deps import get_user_service
from taskboard.routes.resp import ok
from taskboard.services.query import parse_list_query, parse_select
from taskboard.services.user_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
async def list_users(request: Request, service: UserService = Depends(get_user_service)):
    query = parse_list_query(request.query_params, default_limit=service.default_limit)
    return ok(await service.list(query))


@router.post("")
async def create_user(body: UserIn, service: UserService = Depends(get_user_service)):
    """
    Create a user. Ids in pendingTasks that name unknown or completed tasks
    are dropped without error; the stored set is returned.
    """
    user, report = await service.create(body)
    return ok(user.to_doc(), 201, report)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    select: Optional[str] = Query(None),
    service: UserService = Depends(get_user_service),
):
    return ok(await service.get(user_id, parse_select(select)))


@router.put("/{user_id}")
async def replace_user(user_id: str, body: UserIn, service: UserService = Depends(get_user_service)):
    user, report = await service.replace(user_id, body)
    return ok(user.to_doc(), 200, report)


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    """Delete a user and unassign their tasks. 204 carries no body, so
    reconciliation problems are only counted in a response header."""
    _, report = await service.delete(user_id)
    response = Response(status_code=204)
    if report.errors:
        response.headers["X-Reconciliation-Warnings"] = str(len(report.errors))
    return response
