from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os

from app.core.config import settings
from app.core.errors import (
    InvalidInputError,
    PipelineError,
    ProviderConfigurationError,
    ProviderError,
)
from app.routers import readwise, recommendations

# ----------------------------
# Logging
# ----------------------------
logger = logging.getLogger("gazette")
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Literary Gazette", debug=settings.DEBUG)

BUILD_ID = os.getenv("BUILD_ID", "missing")


# ----------------------------
# CORS
# ----------------------------
cors_origins = settings.cors_origins_list
logger.info("[CORS] allow_origins=%s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_build_header(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Gazette-Build"] = BUILD_ID
    return response


def _error_response(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"error": error, "message": message})

    # Ensure CORS headers are present in error responses
    origin = request.headers.get("origin")
    if origin and origin in cors_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
    return response


# ----------------------------
# Error mapping
# ----------------------------
@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return _error_response(request, 400, exc.error, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _error_response(request, 400, "Invalid request", str(exc.errors()))


@app.exception_handler(ProviderConfigurationError)
async def provider_configuration_handler(request: Request, exc: ProviderConfigurationError):
    logger.error("%s (%s %s)", exc.error, request.method, request.url.path)
    return _error_response(request, 500, exc.error, exc.message)


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    logger.error("Error fetching Readwise data: %s", exc)
    return _error_response(request, 502, "Failed to fetch Readwise data", str(exc))


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    logger.error("Error generating recommendations: %s", exc)
    return _error_response(request, 500, "Failed to generate recommendations", str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("[UNHANDLED] %s %s", request.method, request.url.path)
    return _error_response(request, 500, "Internal Server Error", str(exc) or type(exc).__name__)


# ----------------------------
# Routers
# ----------------------------
app.include_router(readwise.router, prefix="/api")
app.include_router(recommendations.router, prefix="/api")


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/api/health")
def api_health_check():
    return {"status": "ok"}
