from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logger import logger
from app.db.session import init_db
from app.middleware.log_middleware import LogMiddleware
from app.services.signaling_service import hub

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    await init_db()
    logger.info("Database tables ready")

    if settings.PRESENCE_BACKEND == "redis":
        await hub.start_relay()
        logger.info(f"Relay listener started for instance {hub.instance_id}")

    yield

    logger.info("Application shutting down...")
    await hub.stop_relay()
    if settings.PRESENCE_BACKEND == "redis":
        from app.core.redis import redis_client
        await redis_client.close()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogMiddleware)

register_exception_handlers(app)

@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

from app.api.api import api_router
app.include_router(api_router, prefix=settings.API_V1_STR)
