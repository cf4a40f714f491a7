from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.es_client import close_es_client
from app.core.logging_config import setup_logging
from app.routers.search import router as search_router

settings = get_settings()

# Setup logging (must be done before any other imports that use logging)
setup_logging(log_level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    close_es_client()


app = FastAPI(
    title=settings.APP_NAME,
    description="Free-text product search with staged relaxation and AI re-ranking",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(search_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.APP_NAME}"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
