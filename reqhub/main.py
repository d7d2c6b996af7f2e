import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from reqhub.api.endpoints import activity
from reqhub.api.endpoints import assets
from reqhub.api.endpoints import auth
from reqhub.api.endpoints import client
from reqhub.api.endpoints import dashboard
from reqhub.api.endpoints import export
from reqhub.api.endpoints import notifications
from reqhub.api.endpoints import projects
from reqhub.api.endpoints import requirements
from reqhub.api.endpoints import search
from reqhub.core.config import get_settings
from reqhub.core.errors import register_exception_handlers
from reqhub.core.logging_config import configure_logging
from reqhub.core.rate_limit import limiter
from reqhub.init_db import create_db_and_tables

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    create_db_and_tables()
    logger.info("RequirementsHub started (%s)", settings.environment)
    yield


app = FastAPI(title="RequirementsHub", lifespan=lifespan)
app.state.limiter = limiter
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(projects.router, prefix="/projects", tags=["projects"])
app.include_router(requirements.router, prefix="/requirements", tags=["requirements"])
app.include_router(assets.router, prefix="/assets", tags=["assets"])
app.include_router(client.router, prefix="/client", tags=["client"])
app.include_router(search.router, prefix="/search", tags=["search"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(activity.router, prefix="/activity", tags=["activity"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
app.include_router(export.router, prefix="/export", tags=["export"])

app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


@app.get("/health")
def health():
    return {"status": "OK", "environment": settings.environment}
