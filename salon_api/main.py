import os
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from salon_api.core.config import settings
from salon_api.core.config_loader import load_salon_config
from salon_api.core.errors import register_exception_handlers
from salon_api.core.logger import setup_logging, logger
from salon_api.core.middleware import setup_middleware
from salon_api.db.database import SessionLocal, create_db_and_tables
from salon_api.api import (
    auth, appointments, services, categories, images, reviews,
    availability, public_hours, notifications, drive, dashboard,
)
from salon_api.services import auth_service

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
    load_salon_config()
    create_db_and_tables()
    with SessionLocal() as db:
        auth_service.seed_admins(db)
    yield
    # Shutdown
    logger.info("🛑 Shutting down backend")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)
setup_middleware(app)

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(appointments.router, prefix="/api/appointments", tags=["Appointments"])
app.include_router(services.router, prefix="/api/services", tags=["Services"])
app.include_router(categories.router, prefix="/api/categories", tags=["Categories"])
app.include_router(categories.router, prefix="/api/service-categories", tags=["Categories"])
app.include_router(images.router, prefix="/api/images", tags=["Images"])
app.include_router(reviews.router, prefix="/api/reviews", tags=["Reviews"])
app.include_router(availability.router, prefix="/api/availability", tags=["Availability"])
app.include_router(public_hours.router, prefix="/api/public-hours", tags=["Public Hours"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(drive.router, prefix="/api/drive", tags=["Drive"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/")
async def root():
    return {'status': 'active', 'name': settings.PROJECT_NAME, 'time': datetime.now().isoformat()}


@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}


@app.get("/api/health")
async def api_health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("salon_api.main:app", host="0.0.0.0", port=settings.PORT, reload=settings.ENVIRONMENT == "development")
