from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import func, select

from crewhours.config import Settings
from crewhours.core.exceptions import register_exception_handlers
from crewhours.database import Base, build_engine, build_session_factory

# Import all models so Base.metadata knows about them
import crewhours.auth.models  # noqa: F401
import crewhours.profiles.models  # noqa: F401
import crewhours.projects.models  # noqa: F401
import crewhours.records.models  # noqa: F401
import crewhours.closings.models  # noqa: F401
import crewhours.invoicing.models  # noqa: F401
import crewhours.advances.models  # noqa: F401
import crewhours.sanctions.models  # noqa: F401
import crewhours.accommodations.models  # noqa: F401
import crewhours.company.models  # noqa: F401


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = application.state.settings

    # Ensure data directories exist before DB connection
    Path(settings.storage_path).mkdir(parents=True, exist_ok=True)
    if settings.is_sqlite:
        db_path = settings.database_url.split("///")[-1]
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = build_engine(settings.database_url)

    # Auto-create tables for SQLite in development
    if settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    application.state.engine = engine
    application.state.session_factory = build_session_factory(engine)

    from crewhours.core.scheduler import setup_scheduler, shutdown_scheduler

    if settings.scheduler_enabled:
        setup_scheduler(application.state.session_factory, settings)

    yield

    shutdown_scheduler()
    await engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    fastapi_app = FastAPI(
        title="CrewHours",
        description="Timesheets, weekly closings and invoicing for construction crews",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = settings

    # CORS
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    from crewhours.auth.router import router as auth_router
    from crewhours.profiles.router import router as profiles_router
    from crewhours.projects.router import router as projects_router
    from crewhours.records.router import router as records_router
    from crewhours.closings.router import router as closings_router
    from crewhours.approvals.router import router as approvals_router
    from crewhours.invoicing.router import router as invoicing_router
    from crewhours.advances.router import router as advances_router
    from crewhours.sanctions.router import router as sanctions_router
    from crewhours.accommodations.router import router as accommodations_router
    from crewhours.export.router import router as export_router
    from crewhours.company.router import router as company_router

    fastapi_app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    fastapi_app.include_router(profiles_router, prefix="/api/profiles", tags=["profiles"])
    fastapi_app.include_router(projects_router, prefix="/api/projects", tags=["projects"])
    fastapi_app.include_router(records_router, prefix="/api/records", tags=["records"])
    fastapi_app.include_router(closings_router, prefix="/api/closings", tags=["closings"])
    fastapi_app.include_router(approvals_router, prefix="/api/approvals", tags=["approvals"])
    fastapi_app.include_router(invoicing_router, prefix="/api/invoices", tags=["invoices"])
    fastapi_app.include_router(advances_router, prefix="/api/advances", tags=["advances"])
    fastapi_app.include_router(sanctions_router, prefix="/api/sanctions", tags=["sanctions"])
    fastapi_app.include_router(accommodations_router, prefix="/api/accommodations", tags=["accommodations"])
    fastapi_app.include_router(export_router, prefix="/api/export", tags=["export"])
    fastapi_app.include_router(company_router, prefix="/api/company", tags=["company"])

    # System endpoints
    @fastapi_app.get("/api/system/health")
    async def health():
        return {"data": {"status": "healthy"}}

    @fastapi_app.get("/api/system/stats")
    async def stats(request: Request):
        from crewhours.auth.models import User
        from crewhours.closings.models import ClosingStatus, WeeklyClosing
        from crewhours.invoicing.models import Invoice
        from crewhours.records.models import PerformanceRecord

        async with request.app.state.session_factory() as db:
            user_count = (await db.execute(select(func.count(User.id)))).scalar() or 0
            record_count = (await db.execute(
                select(func.count(PerformanceRecord.id)).where(
                    PerformanceRecord.deleted_at.is_(None)
                )
            )).scalar() or 0
            pending_approvals = (await db.execute(
                select(func.count(WeeklyClosing.id)).where(
                    WeeklyClosing.status == ClosingStatus.SUBMITTED,
                    WeeklyClosing.deleted_at.is_(None),
                )
            )).scalar() or 0
            invoice_count = (await db.execute(
                select(func.count(Invoice.id)).where(Invoice.deleted_at.is_(None))
            )).scalar() or 0

        return {
            "data": {
                "user_count": user_count,
                "record_count": record_count,
                "pending_approvals": pending_approvals,
                "invoice_count": invoice_count,
            }
        }

    # Register exception handlers
    register_exception_handlers(fastapi_app)

    return fastapi_app


app = create_app()
