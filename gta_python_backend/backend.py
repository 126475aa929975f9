import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gta_python_backend import config
from gta_python_backend.grounded_theory_api import router as grounded_theory_router
from gta_python_backend.services.concept_extraction_client import get_concept_extraction_port

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    port = get_concept_extraction_port()
    logger.info(
        "[INFO] Grounded theory backend starting (concept extraction: %s)",
        type(port).__name__ if port is not None else "statistical only",
    )
    yield
    logger.info("[INFO] Grounded theory backend stopped")


# fastapi app
gta_app = FastAPI(lifespan=lifespan)

# Configure CORS
gta_app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,  # Vite frontend ports by default
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
gta_app.include_router(grounded_theory_router)


@gta_app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "gta_python_backend"}
