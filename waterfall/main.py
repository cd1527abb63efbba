"""
Debt Waterfall Simulator - FastAPI Application.
Serves the payoff simulation engine with strict input validation, audit logging and request tracing.
"""
from typing import Callable, Awaitable, Dict, Any
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import time
from uuid import uuid4

from waterfall.core.config import settings
from waterfall.core.logger import logger
from waterfall.simulation.router import router as simulation_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Logs the active allocation policy at startup and a line at shutdown."""
    logger.info(f"Initializing {settings.APP_NAME} v{settings.VERSION}")
    logger.info(
        f"Allocation policy: forced_targets={settings.FORCED_TARGETS}, "
        f"cap={settings.FORCED_TARGET_CAP}, horizon={settings.MAX_SIMULATION_MONTHS}"
    )

    yield

    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description=(
        "Month-by-month debt payoff simulation: interest accrual, protected minimum payments, "
        "avalanche allocation of lump sums and leftover budget."
    ),
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_correlation_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Tags each simulation request with the caller's X-Correlation-ID (or a fresh one)
    so engine and audit log lines can be joined; echoes it back with the elapsed time.
    """
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id

    start_time = time.time()

    logger.info(
        f"Request: {request.method} {request.url.path}",
        extra={"correlation_id": correlation_id}
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Correlation-ID"] = correlation_id
    response.headers["X-Process-Time"] = str(process_time)

    logger.info(
        f"Response: {response.status_code} | {process_time:.3f}s",
        extra={"correlation_id": correlation_id}
    )

    return response


app.include_router(simulation_router, prefix="/simulation", tags=["Simulation"])


@app.get("/api-info", tags=["Health"])
def api_info() -> Dict[str, Any]:
    """Lists the simulation endpoints and service version."""
    return {
        "app": settings.APP_NAME,
        "version": settings.VERSION,
        "status": "online",
        "endpoints": {
            "run": "/simulation/run",
            "compare": "/simulation/compare",
            "default": "/simulation/default",
            "import": "/simulation/import",
            "docs": "/docs",
            "redoc": "/redoc"
        }
    }


@app.get("/health", tags=["Health"])
def health_check() -> Dict[str, str]:
    """Reports that the simulator is up."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.VERSION
    }


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Returns HTTP errors with the request correlation id attached."""
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.info(
        f"HTTPException: {exc.status_code} | {exc.detail}",
        extra={"correlation_id": correlation_id}
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "correlation_id": correlation_id}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Rejects malformed scenarios before they reach the engine."""
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.info(
        f"Validation failed: {len(exc.errors())} error(s)",
        extra={"correlation_id": correlation_id}
    )

    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]

    return JSONResponse(
        status_code=422,
        content={"detail": errors, "correlation_id": correlation_id}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler for failures inside a simulation request.
    Logs the traceback under the request correlation id and returns a bare 500.
    """
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={"correlation_id": correlation_id}
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal Server Error",
            "correlation_id": correlation_id
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "waterfall.main:app",
        host="0.0.0.0",  # nosec
        port=8000,
        reload=settings.DEBUG
    )
