"""
Main FastAPI application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from chicken_manager.config import get_settings
from chicken_manager.database import engine, create_tables
from chicken_manager.services.auth_client import build_auth_client
from chicken_manager.api import auth, eggs, expenses, feed, flock_events, flock_profile
from chicken_manager.api import flock_batches, batch_events, death_records, customers, sales
from chicken_manager.api import reports, production, flock_summary, savings, dashboard
from chicken_manager.utils.helpers import timestamp
from chicken_manager.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Database tables created")

    app.state.auth_client = build_auth_client(settings)
    logger.info(f"Auth collaborator ready (mode={settings.AUTH_MODE})")

    yield

    await app.state.auth_client.aclose()
    await engine.dispose()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)


class CORSPreflightMiddleware(CORSMiddleware):
    """CORS with allowed preflights answered 200 and an empty body"""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


# CORS - bearer tokens, no cookies, so any origin may call
app.add_middleware(
    CORSPreflightMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error envelope

def _error(status_code: int, body: dict, headers=None) -> JSONResponse:
    body.setdefault("timestamp", timestamp())
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = dict(exc.detail) if isinstance(exc.detail, dict) else {"message": exc.detail}
    return _error(exc.status_code, body, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return _error(400, {"message": "; ".join(problems) or "Invalid request"})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return _error(409, {"message": "Conflicting record", "error": str(exc.orig)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return _error(500, {"message": "Storage error", "error": str(getattr(exc, "orig", None) or exc)})


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(eggs.router, prefix="/api/eggs", tags=["Eggs"])
app.include_router(expenses.router, prefix="/api/expenses", tags=["Expenses"])
app.include_router(feed.router, prefix="/api/feed", tags=["Feed"])
app.include_router(flock_events.router, prefix="/api/flock-events", tags=["Flock Events"])
app.include_router(flock_profile.router, prefix="/api/flock-profile", tags=["Flock Profile"])
app.include_router(flock_batches.router, prefix="/api/flock-batches", tags=["Flock Batches"])
app.include_router(batch_events.router, prefix="/api/batch-events", tags=["Batch Events"])
app.include_router(death_records.router, prefix="/api/death-records", tags=["Death Records"])
app.include_router(customers.router, prefix="/api/customers", tags=["Customers"])
app.include_router(sales.router, prefix="/api/sales", tags=["Sales"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(production.router, prefix="/api/production", tags=["Production"])
app.include_router(flock_summary.router, prefix="/api/flock-summary", tags=["Flock Summary"])
app.include_router(savings.router, prefix="/api/savings", tags=["Savings"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chicken_manager.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
