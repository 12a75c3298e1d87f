"""Main FastAPI application"""
import logging
import logging.config
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from starlette.middleware.base import BaseHTTPMiddleware

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

import config
from routes import router as api_router
from utils.rate_limit import limiter


# --- Logging: Rich console output for the app and uvicorn ---
def build_logging_config(level: str) -> dict:
    rich_handler = {
        "class": "rich.logging.RichHandler",
        "level": "DEBUG",
        "rich_tracebacks": True,
        "show_path": False,
        "log_time_format": "%Y-%m-%d %H:%M:%S",
        "markup": False, # Log lines carry raw dicts and brackets
    }
    loggers = {
        name: {"handlers": ["rich"], "level": "INFO", "propagate": False}
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
    }
    loggers[""] = {"handlers": ["rich"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": "%(name)s - %(message)s"}},
        "handlers": {"rich": {**rich_handler, "formatter": "plain"}},
        "loggers": loggers,
    }


logging.config.dictConfig(build_logging_config(config.LOG_LEVEL))

logger = logging.getLogger(__name__)


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects uploads to the given paths whose declared Content-Length exceeds
    config.MAX_UPLOAD_SIZE. Chunked bodies without a length pass through.
    """

    def __init__(self, app, paths: tuple):
        super().__init__(app)
        self.paths = set(paths)

    async def dispatch(self, request: Request, call_next):
        declared = request.headers.get("content-length")
        if request.url.path not in self.paths or not declared:
            return await call_next(request)

        if not declared.isdigit():
            logger.warning(f"Upload to {request.url.path} rejected: bad Content-Length {declared!r}.")
            return JSONResponse(status_code=400, content={"detail": {"message": "Invalid Content-Length header."}})

        max_size = config.MAX_UPLOAD_SIZE
        if int(declared) > max_size:
            logger.warning(f"Upload to {request.url.path} rejected: {declared} bytes over the {max_size} byte limit.")
            return JSONResponse(
                status_code=413,
                content={"detail": {"message": f"Upload exceeds the {max_size / (1024 * 1024):.1f} MB limit."}},
            )
        return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: Connect to MongoDB
    logger.info(f"Connecting to MongoDB database {config.DB_NAME}...")
    try:
        app.state.db_client = AsyncIOMotorClient(config.MONGODB_URI)
        app.state.db = app.state.db_client[config.DB_NAME]
        app.state.expenses_collection = app.state.db.get_collection(config.EXPENSES_COLLECTION)
        await app.state.db_client.admin.command('ping')
        logger.info("MongoDB ping successful.")
        await app.state.expenses_collection.create_index([("user", ASCENDING), ("date", DESCENDING)])
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        if getattr(app.state, "db_client", None) is not None:
            app.state.db_client.close()
        app.state.db_client = None
        app.state.db = None
        app.state.expenses_collection = None

    yield # Application runs here

    # Shutdown: Close MongoDB connection
    if getattr(app.state, "db_client", None) is not None:
        logger.info("Closing MongoDB connection...")
        app.state.db_client.close()
        logger.info("MongoDB connection closed.")


app = FastAPI(
    title="Expense Tracker API",
    description="Track personal expenses: CRUD, CSV import, bulk delete and monthly statistics.",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed or incomplete input is a 400 rather than FastAPI's default 422."""
    errors = jsonable_encoder(exc.errors())
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in errors
    )
    logger.warning(f"{request.method} {request.url.path} rejected: {message}")
    return JSONResponse(status_code=400, content={"detail": {"message": message, "errors": errors}})


# --- Add Middleware (Order Matters) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(UploadSizeLimitMiddleware, paths=(config.UPLOAD_ENDPOINT_PATH,))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} - Status: {response.status_code} - Time: {process_time:.4f}s")
    return response


app.include_router(api_router, tags=["expenses"])


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "database": "connected" if getattr(app.state, "expenses_collection", None) is not None else "unavailable",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=False
    )
