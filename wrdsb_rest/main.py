"""
main.py — FastAPI Application Entrypoint

Purpose:
- Initialize application services (logging, config, database tables).
- Register API routers under the REST prefix + namespace.
- Render every RestError (and request validation failure) as
  `{"code", "message", "status"}`.
- Provide `app` object used by ASGI server (uvicorn / hypercorn).

This file should stay clean — no business logic here.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wrdsb_rest.api.v1 import users
from wrdsb_rest.core.config import settings
from wrdsb_rest.core.database import init_db
from wrdsb_rest.core.errors import RestError
from wrdsb_rest.core.logging import configure_logging, get_logger

# -----------------------------------------------------------------------------
# App Initialization
# -----------------------------------------------------------------------------

configure_logging(settings.LOG_LEVEL)  # Set logging defaults at startup

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="WRDSB REST User Lookup",
    description="User lookup and update endpoints keyed by ID number or email",
    version="0.1.0",
    lifespan=lifespan,
)

# -----------------------------------------------------------------------------
# Error Rendering
# -----------------------------------------------------------------------------

@app.exception_handler(RestError)
async def rest_error_handler(request: Request, exc: RestError):
    if exc.status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.code)
    else:
        logger.info("%s %s → %s (%s)", request.method, request.url.path, exc.code, exc.status)
    return JSONResponse(status_code=exc.status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    params = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        name = loc[0] if loc else "body"
        if name not in params:
            params.append(name)
    error = RestError("rest_invalid_param", f"Invalid parameter(s): {', '.join(params)}", 400)
    logger.info("%s %s → %s (%s)", request.method, request.url.path, error.code, ", ".join(params))
    return JSONResponse(status_code=error.status, content=error.to_dict())

# -----------------------------------------------------------------------------
# Router Registration
# -----------------------------------------------------------------------------

# Mount the user lookup routes under /{prefix}/{namespace}
app.include_router(users.router, prefix=f"{settings.REST_URL_PREFIX}/{settings.REST_NAMESPACE}")

# -----------------------------------------------------------------------------
# Health Check
# -----------------------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "ok", "namespace": settings.REST_NAMESPACE}
