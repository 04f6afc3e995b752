from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
import logging
import os
import time

# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

from timetracker.api import auth, timer, calendar, health, metrics
from timetracker.database import engine
from timetracker.exceptions import AuthError, StorageError, TimeTrackerError
from timetracker.models.models import Base

# Create database tables
if os.environ.get("CREATE_TABLES", "true").lower() in ("1", "true", "yes"):
    Base.metadata.create_all(bind=engine)


app = FastAPI(
    title="Time Tracker API",
    description="Start/stop work timer with notes, daily and monthly views and a contribution graph",
    version="1.0.0"
)

# Configure CORS
cors_origins = os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def record_request_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    metrics.http_requests_total.labels(request.method, endpoint, str(response.status_code)).inc()
    metrics.http_request_duration.labels(request.method, endpoint).observe(time.perf_counter() - started)
    return response

@app.exception_handler(TimeTrackerError)
async def handle_domain_error(request: Request, exc: TimeTrackerError):
    if isinstance(exc, StorageError):
        # Detail was logged where the failure happened
        logger.error("Storage failure on %s %s", request.method, request.url.path)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

# Include routers
app.include_router(health.router, prefix="/api")
app.include_router(metrics.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(timer.router, prefix="/api")
app.include_router(calendar.router, prefix="/api")

@app.get("/")
async def root():
    return {"message": "Time Tracker API is running!", "status": "ok"}
