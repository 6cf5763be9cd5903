# workout_tracking/main.py
import os
import time
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from workout_tracking.errors import TrackingError
from workout_tracking.routers.sessions import router as sessions_router
from workout_tracking.routers.exercises import router as exercises_router
from workout_tracking.routers.history import router as history_router
from workout_tracking.db import SessionLocal  # for healthz DB check

log = logging.getLogger("uvicorn")

app = FastAPI(
    title="Workout Tracking API",
    openapi_tags=[
        {"name": "sessions", "description": "Workout session lifecycle"},
        {"name": "exercises", "description": "Versioned, idempotent exercise commands"},
        {"name": "history", "description": "Finished sessions, newest first"},
    ],
)


# CORS (relax for local dev; tighten origins in prod via env)
ALLOW_ORIGINS = os.getenv("ALLOW_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = req_id
    log.info("rid=%s %s %s -> %s in %.1fms",
             req_id, request.method, request.url.path, response.status_code, duration_ms)
    return response

@app.exception_handler(TrackingError)
async def tracking_error_handler(request: Request, exc: TrackingError):
    if exc.status_code >= 500:
        log.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # rejected input is not echoed back; it may not be JSON-serializable (NaN, Infinity)
    errors = [{k: v for k, v in err.items() if k != "input"} for err in exc.errors()]
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())) or 'body'}: {err.get('msg')}" for err in errors
    )
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder({"error": "validation_error", "message": message, "detail": errors}),
    )

@app.get("/")
def root():
    return {"ok": True, "name": "Workout Tracking API"}

@app.get("/ping")
def ping():
    return {"pong": True}

@app.get("/healthz")
def healthz():
    # Quick DB sanity check
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        return {"status": "degraded", "error": str(e)}

@app.get("/version")
def version():
    return {"version": os.getenv("API_VERSION", "dev")}

# Routers
app.include_router(sessions_router)
app.include_router(exercises_router)
app.include_router(history_router)
