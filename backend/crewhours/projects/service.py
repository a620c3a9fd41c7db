import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.service import get_user
from crewhours.core.exceptions import ConflictError, NotFoundError
from crewhours.projects.models import Project, ProjectAssignment
from crewhours.projects.schemas import ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


async def list_projects(db: AsyncSession, include_inactive: bool = False) -> list[Project]:
    query = select(Project).where(Project.deleted_at.is_(None))
    if not include_inactive:
        query = query.where(Project.is_active.is_(True))
    result = await db.execute(query.order_by(Project.name))
    return list(result.scalars().all())


async def get_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
    result = await db.execute(
        select(Project).where(Project.id == project_id, Project.deleted_at.is_(None))
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project", str(project_id))
    return project


async def create_project(db: AsyncSession, data: ProjectCreate) -> Project:
    project = Project(**data.model_dump())
    db.add(project)
    await db.commit()
    await db.refresh(project)
    return project


async def update_project(
    db: AsyncSession, project_id: uuid.UUID, data: ProjectUpdate
) -> Project:
    project = await get_project(db, project_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(project, key, value)
    await db.commit()
    await db.refresh(project)
    return project


async def delete_project(db: AsyncSession, project_id: uuid.UUID) -> None:
    project = await get_project(db, project_id)
    project.soft_delete()
    project.is_active = False
    await db.commit()


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


async def list_assignments(db: AsyncSession, project_id: uuid.UUID) -> list[ProjectAssignment]:
    await get_project(db, project_id)
    result = await db.execute(
        select(ProjectAssignment)
        .where(ProjectAssignment.project_id == project_id)
        .order_by(ProjectAssignment.created_at)
    )
    return list(result.scalars().all())


async def assign_user(
    db: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> ProjectAssignment:
    project = await get_project(db, project_id)
    await get_user(db, user_id)
    assignment = ProjectAssignment(project_id=project_id, user_id=user_id)
    db.add(assignment)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("The user is already assigned to this project.")
    await db.refresh(assignment)
    logger.info("User %s assigned to project %s", user_id, project.name)
    return assignment


async def remove_assignment(
    db: AsyncSession, project_id: uuid.UUID, assignment_id: uuid.UUID
) -> None:
    result = await db.execute(
        select(ProjectAssignment).where(
            ProjectAssignment.id == assignment_id,
            ProjectAssignment.project_id == project_id,
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise NotFoundError("Assignment", str(assignment_id))
    await db.delete(assignment)
    await db.commit()


async def assigned_projects(db: AsyncSession, user_id: uuid.UUID) -> list[Project]:
    """Active projects the user is assigned to, used to preselect the project in the calendar."""
    result = await db.execute(
        select(Project)
        .join(ProjectAssignment, ProjectAssignment.project_id == Project.id)
        .where(
            ProjectAssignment.user_id == user_id,
            Project.deleted_at.is_(None),
            Project.is_active.is_(True),
        )
        .order_by(Project.name)
    )
    return list(result.scalars().all())
