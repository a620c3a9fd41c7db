import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.core.permissions import Capability
from crewhours.dependencies import get_current_user, get_db, require_capability
from crewhours.projects import service
from crewhours.projects.schemas import (
    AssignmentCreate,
    AssignmentResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
)

router = APIRouter()


@router.get("")
async def list_projects(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
    include_inactive: bool = Query(False),
) -> dict:
    projects = await service.list_projects(db, include_inactive=include_inactive)
    return {"data": [ProjectResponse.model_validate(p) for p in projects]}


@router.post("", status_code=201)
async def create_project(
    data: ProjectCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_PROJECTS))],
) -> dict:
    project = await service.create_project(db, data)
    return {"data": ProjectResponse.model_validate(project)}


@router.get("/assigned")
async def list_my_projects(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    """Projects the current user is assigned to."""
    projects = await service.assigned_projects(db, current_user.id)
    return {"data": [ProjectResponse.model_validate(p) for p in projects]}


@router.get("/{project_id}")
async def get_project(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
) -> dict:
    project = await service.get_project(db, project_id)
    return {"data": ProjectResponse.model_validate(project)}


@router.put("/{project_id}")
async def update_project(
    project_id: uuid.UUID,
    data: ProjectUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_PROJECTS))],
) -> dict:
    project = await service.update_project(db, project_id, data)
    return {"data": ProjectResponse.model_validate(project)}


@router.delete("/{project_id}")
async def delete_project(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_PROJECTS))],
) -> dict:
    await service.delete_project(db, project_id)
    return {"data": {"message": "Project deleted"}}


@router.get("/{project_id}/assignments")
async def list_assignments(
    project_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.VIEW_ALL_RECORDS))],
) -> dict:
    assignments = await service.list_assignments(db, project_id)
    return {"data": [AssignmentResponse.model_validate(a) for a in assignments]}


@router.post("/{project_id}/assignments", status_code=201)
async def assign_user(
    project_id: uuid.UUID,
    data: AssignmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_PROJECTS))],
) -> dict:
    assignment = await service.assign_user(db, project_id, data.user_id)
    return {"data": AssignmentResponse.model_validate(assignment)}


@router.delete("/{project_id}/assignments/{assignment_id}")
async def remove_assignment(
    project_id: uuid.UUID,
    assignment_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_PROJECTS))],
) -> dict:
    await service.remove_assignment(db, project_id, assignment_id)
    return {"data": {"message": "Assignment removed"}}
