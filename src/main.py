import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings
from logger import setup_logging, get_logger
from create_tables import crear_tablas
from database import SessionLocal

from modules.jobs.scheduler import start_job_runner
from modules.documents.models import User, UserRole
from modules.auth.services.auth_service import AuthService
from modules.auth.controllers.auth_controller import router as auth_router
from modules.notifications.controllers.notification_controller import router as notification_router
from modules.documents.controllers.document_controller import router as document_router
from modules.documents.controllers.signature_controller import router as signature_router
from modules.webhooks.controllers.webhook_controller import router as webhook_router

setup_logging(
    log_level=settings.log_level,
    use_json=settings.log_json,
    app_name=settings.app_name,
    environment=settings.environment,
)
logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup logic ---
    logger.info("Starting application", environment=settings.environment)
    crear_tablas()
    scheduler = start_job_runner()
    if settings.environment == "development":
        _crear_datos_prueba()
    yield
    # --- Shutdown logic ---
    scheduler.shutdown(wait=False)
    logger.info("Application stopped")

def _crear_datos_prueba():
    """Crea usuarios de prueba con contraseñas."""
    with SessionLocal() as session:
        if session.query(User).count() > 0:
            return

        admin = User(
            name="Carlos López",
            email="carlos@empresa.com",
            password_hash=AuthService.get_password_hash("carlos123"),
            role=UserRole.ADMIN,
            team_id=1,
            is_active=True
        )
        miembro = User(
            name="Juan Pérez",
            email="juan@empresa.com",
            password_hash=AuthService.get_password_hash("juan123"),
            role=UserRole.MEMBER,
            team_id=1,
            is_active=True
        )
        session.add_all([admin, miembro])
        session.commit()

        logger.info("Seed users created", users=[admin.email, miembro.email])

app = FastAPI(
    title=settings.app_name,
    description="API para envío y firma de documentos con múltiples destinatarios",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=[
        "Accept",
        "Accept-Language",
        "Content-Language",
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Origin",
        "Access-Control-Request-Method",
        "Access-Control-Request-Headers"
    ],
    expose_headers=["*"],
    max_age=86400,
)
# Routers
app.include_router(auth_router)
app.include_router(notification_router, prefix="/notifications", tags=["notifications"])
app.include_router(document_router)
app.include_router(signature_router)
app.include_router(webhook_router)

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
