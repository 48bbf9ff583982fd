from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Settings read the environment, so .env must be loaded first
load_dotenv()

from app.core.config import settings
from app.api.api_v1.api import api_router
from app.core.database import initialize_db, close_db_connection, get_db_context
from app.core.form_config import ClientType
from app.db.seed import seed_mock_data
from app.services.chat_service import TypingIndicatorRegistry
from app.utils.logging import configure_logging

configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the schema and, for demo deployments, load the mock users,
    cases and conversations. Disposes the engine on shutdown.
    """
    logger.info(f"Starting {settings.PROJECT_NAME} {settings.VERSION}")
    await initialize_db()

    if settings.SEED_MOCK_DATA:
        async with get_db_context() as db:
            seeded = await seed_mock_data(db)
        logger.info("Mock data loaded" if seeded else "Mock data already present, skipping seed")

    yield

    await close_db_connection()
    logger.info("Database connection closed")

def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )
    application.state.typing_registry = TypingIndicatorRegistry(settings.TYPING_INDICATOR_TTL_SECONDS)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.ENABLE_RESPONSE_COMPRESSION:
        application.add_middleware(GZipMiddleware, minimum_size=1000)

    application.include_router(api_router, prefix=settings.API_V1_STR)

    @application.get("/")
    async def root():
        """
        Basic API information.
        """
        return {
            "message": "Welcome to the FICA Onboarding API",
            "version": settings.VERSION,
            "client_types": [client_type.value for client_type in ClientType],
            "documentation": "/docs"
        }

    return application

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
