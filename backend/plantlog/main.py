import logging
import time

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from plantlog.config import settings
from plantlog.database import get_db, get_redis
from plantlog.init_db import init_db
from plantlog.routes import account, days, reports

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Secure headers middleware
class SecureHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'no-referrer'
        response.headers['Strict-Transport-Security'] = 'max-age=63072000; includeSubDomains; preload'
        return response


# Request logging middleware
class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = (time.time() - start_time) * 1000  # ms
        logger.info("%s %s - %s - %.2fms", request.method, request.url.path, response.status_code, duration)
        return response


init_db()

app = FastAPI(
    title="PlantLog API",
    description="Daily feeder and turbine readings, energy-flow metrics and reports",
    version="1.0.0"
)

# Called with the new identity (or None) whenever a session changes
app.state.identity_listeners = []


def _log_identity_change(identity):
    if identity is None:
        logger.info("Signed out; working from local data only")
    else:
        logger.info("Session for %s (anonymous=%s); remote mirror enabled", identity.user_id, identity.is_anonymous)


app.state.identity_listeners.append(_log_identity_change)

# Enable compression
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# Add secure headers
app.add_middleware(SecureHeadersMiddleware)

# Add request logging middleware
app.add_middleware(LoggingMiddleware)

# API versioning: v1
app.include_router(days.router, prefix="/api/v1", tags=["days"])
app.include_router(reports.router, prefix="/api/v1", tags=["reports"])
app.include_router(account.router, prefix="/api/v1", tags=["account"])


@app.get("/")
def read_root():
    return {"message": "Welcome to PlantLog API", "docs": "/docs"}


@app.get("/health")
def health_check(db: Session = Depends(get_db), redis_client=Depends(get_redis)):
    db_status, redis_status = 'ok', 'ok'
    try:
        db.execute(text('SELECT 1'))
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"
    try:
        if not redis_client.ping():
            redis_status = "error: cannot ping Redis"
    except Exception as e:
        redis_status = f"error: {str(e)}"
    return {"db": db_status, "redis": redis_status}
