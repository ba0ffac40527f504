import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from config import get_settings
from database import create_all_tables
from errors import register_error_handlers
from rate_limit import limiter
from routers.auth import router as auth_router
from routers.todos import router as todos_router
from routers.stats import router as stats_router

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "todo-stats"
VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Todo Stats API...")
    create_all_tables()
    logger.info("Database tables created/verified.")
    yield
    logger.info("Shutting down Todo Stats API.")


app = FastAPI(
    title="Todo Stats API",
    version=VERSION,
    description="Per-user todo lists with completion statistics.",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers under /api/v1
app.include_router(auth_router, prefix="/api/v1")
app.include_router(todos_router, prefix="/api/v1")
app.include_router(stats_router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "ok", "service": SERVICE_NAME, "version": VERSION}


@app.get("/")
def root():
    return {
        "name": "Todo Stats API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "api": "/api/v1",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.API_PORT)
