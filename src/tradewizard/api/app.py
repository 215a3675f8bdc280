from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tradewizard.api.routes_classification import router as classification_router
from tradewizard.api.routes_market import router as market_router
from tradewizard.bootstrap import build_services
from tradewizard.errors import InvalidInputError, InvalidTransitionError
from tradewizard.observability import (
    bind_run_id,
    current_run_id,
    log_event,
    new_run_id,
    redact_api_key,
    reset_run_id,
)
from tradewizard.version import __version__

# -----------------------------------------------------------------------------
# App setup
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    yield
    services = getattr(app.state, "services", None)
    if services is not None:
        await services.aclose()
    app.state.services = None


app = FastAPI(title="tradewizard API", version="v1", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(classification_router)
app.include_router(market_router)


@app.middleware("http")
async def attach_run_id(request: Request, call_next):
    run_id = current_run_id() or new_run_id()
    token = bind_run_id(run_id)
    log_event(
        "request.start",
        path=str(request.url.path),
        api_key=redact_api_key(request.headers.get("X-API-Key")),
    )
    try:
        response = await call_next(request)
        response.headers["X-Run-ID"] = run_id
        log_event("request.end", path=str(request.url.path), status=response.status_code)
        return response
    finally:
        reset_run_id(token)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": {"message": str(exc)}})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": {"message": str(exc), "state": exc.state}})


@app.get("/v1/health")
def health(request: Request) -> dict:
    services = getattr(request.app.state, "services", None)
    return {
        "status": "ok",
        "version": __version__,
        "providers": services.provider_status() if services is not None else {},
    }
