import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from medreminder.config import settings, check_extraction_configured
from medreminder.core.error_handling import ErrorHandlingMiddleware, create_error_response
from medreminder.core.exceptions import RecordStoreError
from medreminder.database import Base, engine
from medreminder.routers import doses, medicines

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup when migrations have not been run"""
    Base.metadata.create_all(bind=engine)
    check_extraction_configured()
    logger.info(f"Medicine reminder API started ({settings.ENVIRONMENT})")
    yield
    logger.info("Medicine reminder API shutting down")


app = FastAPI(
    title="Medicine Reminder API",
    description="Medicine registration and dose scheduling",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecordStoreError)
async def record_store_error_handler(request: Request, exc: RecordStoreError):
    return create_error_response(exc)


app.include_router(medicines.router)
app.include_router(doses.router)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "medicine-reminder"}
