from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
import contextlib

from ytdl_bridge.config import settings
from ytdl_bridge.core.errors import YtdlError, YtdlItemError
from ytdl_bridge.api.v1 import media

@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    # === Service Registration ===
    from ytdl_bridge.core.container import container
    from ytdl_bridge.core.service_registry import register_all_services
    register_all_services()

    # === Startup Logic ===
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    settings.init_dirs()

    # Configure File Logging
    log_file = settings.USER_DATA_DIR / "logs" / "ytdl_bridge.log"
    sink_id = logger.add(
        log_file,
        rotation="10 MB",
        retention="7 days",
        level="DEBUG",
        encoding="utf-8",
        enqueue=True,
        backtrace=True,
        diagnose=True
    )
    logger.info(f"Log file configured at {log_file}")
    logger.info(f"Registered {len(container._factories)} services")

    yield

    # === Shutdown Logic ===
    logger.info("Shutting down...")
    container.reset()
    logger.remove(sink_id)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(media.router, prefix="/api/v1")

# ─── Global Error Handlers ────────────────────────────────────────
@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Return 400 for input validation errors."""
    logger.warning(f"ValueError on {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=400,
        content={"error": str(exc), "detail": "Bad request"},
    )

@app.exception_handler(YtdlError)
async def ytdl_error_handler(request: Request, exc: YtdlError):
    """The executable is missing, failed to start or reported an error."""
    logger.error(f"{type(exc).__name__} on {request.method} {request.url}: {exc}")
    content = {"error": str(exc), "detail": "Extraction failed"}
    if isinstance(exc, YtdlItemError):
        content["url"] = exc.url
        content["files"] = exc.files
    return JSONResponse(status_code=502, content=content)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: return 500 with consistent JSON shape."""
    logger.error(f"Unhandled exception on {request.method} {request.url}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": str(exc), "detail": "Internal server error"},
    )

@app.get("/health")
async def health_check():
    """Heartbeat endpoint to check if the bridge is running."""
    return {
        "status": "online",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "ytdl_bridge.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
