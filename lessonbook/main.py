import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lessonbook.api.v1.admission_results.router import router as admission_results_router
from lessonbook.api.v1.archives.router import router as archives_router
from lessonbook.api.v1.auth.router import router as auth_router
from lessonbook.api.v1.bookings.router import router as bookings_router
from lessonbook.api.v1.reports.router import router as reports_router
from lessonbook.api.v1.schedule_requests.router import router as schedule_requests_router
from lessonbook.api.v1.settings.router import router as settings_router
from lessonbook.api.v1.shifts.router import router as shifts_router
from lessonbook.api.v1.students.router import router as students_router
from lessonbook.api.v1.users.router import router as users_router
from lessonbook.core.config import settings
from lessonbook.db.session import init_models
from lessonbook.notifications.dispatcher import get_dispatcher

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    await init_models()
    yield
    # Let queued mail go out before the loop closes
    await get_dispatcher().drain()


def create_app() -> FastAPI:
    app = FastAPI(title="Lessonbook Backend", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(shifts_router)
    app.include_router(bookings_router)
    app.include_router(reports_router)
    app.include_router(schedule_requests_router)
    app.include_router(students_router)
    app.include_router(admission_results_router)
    app.include_router(archives_router)
    app.include_router(settings_router)

    return app


app = create_app()
