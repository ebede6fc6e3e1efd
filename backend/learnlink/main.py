import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# Load .env FIRST before any other imports that might need env vars
BACKEND_DIR = Path(__file__).parent.parent
ENV_PATH = BACKEND_DIR / ".env"
load_dotenv(ENV_PATH)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError

from learnlink.activities.router import router as activities_router
from learnlink.config.logging import setup_logging
from learnlink.config.settings import get_settings
from learnlink.database.engine import engine
from learnlink.follows.router import router as follows_router
from learnlink.learning_plans.router import router as learning_plans_router
from learnlink.middleware.error_handlers import register_exception_handlers
from learnlink.middleware.security import SimpleSecurityMiddleware, limiter
from learnlink.notifications.router import router as notifications_router
from learnlink.posts.router import router as posts_router
from learnlink.progress.router import router as progress_router
from learnlink.users.router import router as users_router


setup_logging()
logger = logging.getLogger(__name__)


def _register_routers(app: FastAPI) -> None:
    """Register all application routers."""
    app.include_router(learning_plans_router)
    app.include_router(progress_router)  # Per-user overlay on learning plans
    app.include_router(posts_router)
    app.include_router(activities_router)
    app.include_router(follows_router)
    app.include_router(notifications_router)
    app.include_router(users_router)


def _startup_validation() -> None:
    """Validate configurations on startup."""
    settings = get_settings()
    if settings.AUTH_PROVIDER not in {"none", "header"}:
        msg = f"Unsupported AUTH_PROVIDER '{settings.AUTH_PROVIDER}', expected 'none' or 'header'"
        raise ValueError(msg)
    if settings.AUTH_PROVIDER == "none" and settings.ENVIRONMENT == "production":
        msg = "Single-user mode (AUTH_PROVIDER='none') is not allowed in production."
        raise ValueError(msg)
    logger.info(f"Auth provider: {settings.AUTH_PROVIDER}")


async def _startup_database() -> None:
    """Initialize database with retry logic."""
    max_retries = 5
    retry_delay = 1  # seconds

    for attempt in range(max_retries):
        try:
            from learnlink.database.init import init_database

            await init_database(engine)
            break

        except OperationalError:
            if attempt == max_retries - 1:
                logger.exception("Startup failed after %d attempts", max_retries)
                raise

            logger.warning(
                "Database connection attempt %d failed, retrying in %ds...",
                attempt + 1,
                retry_delay,
            )
            await asyncio.sleep(retry_delay)
            retry_delay *= 2  # Exponential backoff


async def _shutdown_cleanup() -> None:
    """Clean up resources on shutdown."""
    logger.info("Starting graceful shutdown...")
    await engine.dispose()
    logger.info("Shutdown complete")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    _startup_validation()
    await _startup_database()

    yield

    await _shutdown_cleanup()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LearnLink API",
        description="Learning plans, per-user progress tracking, posts and activity timelines",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan if settings.ENVIRONMENT != "test" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SimpleSecurityMiddleware)

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Check application health status."""
        return {"status": "healthy"}

    _register_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    from learnlink.config import env

    host = env("API_HOST", "127.0.0.1")
    port = int(env("API_PORT", "8080"))

    uvicorn.run(app, host=host, port=port)
