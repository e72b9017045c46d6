from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from core.exceptions import TournamentException

from db import Base, engine
from core.config import settings
from core.logging import logger

from models.user import User  # noqa: F401
from models.tournament import Tournament  # noqa: F401
from models.participant import Participant  # noqa: F401
from models.payment import Payment  # noqa: F401
from models.reminder import Reminder  # noqa: F401
from models.website_order import WebsiteOrder  # noqa: F401
from models.audit_log import AuditLog  # noqa: F401
from models.notification import Notification  # noqa: F401

from services.reminder_scheduler import reminder_scheduler

# ROUTES
from api.routers.auth import router as auth_router
from api.routers.tournaments import router as tournaments_router
from api.routers.payments import router as payments_router
from api.routers.website_orders import router as website_orders_router
from api.routers.users import router as users_router
from api.routers.admin import router as admin_router
from api.routers.websocket import router as websocket_router


app = FastAPI(title="Free Fire Tournament API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TournamentException)
async def tournament_exception_handler(request: Request, exc: TournamentException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": exc.kind},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "type": "validation_error"}
    )


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError):
    logger.error(f"Database unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage temporarily unavailable, please retry", "type": "storage_unavailable"}
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    content = {"detail": "Internal server error", "type": type(exc).__name__}
    if settings.debug:
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.on_event("startup")
async def startup_event():
    logger.info("Starting up application...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")

    if settings.reminder_scheduler_enabled:
        await reminder_scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application...")
    await reminder_scheduler.stop()


app.include_router(auth_router, tags=["Authentication"])
app.include_router(users_router)
app.include_router(tournaments_router)
app.include_router(payments_router)
app.include_router(website_orders_router)
app.include_router(admin_router)
app.include_router(websocket_router)
