import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campus_events.config import get_settings
from campus_events.core.errors import CampusError
from campus_events.logging_utils import setup_logging
from campus_events.models import Base, engine
from .routes import attendance, auth, colleges, events, feedback, registrations, reports, students

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def validation_details(exc: RequestValidationError):
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(location), "message": error.get("msg", "")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CampusError)
    async def campus_error_handler(request: Request, exc: CampusError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": validation_details(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(create_tables: bool = True) -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)
    if settings.uses_development_key:
        logger.warning("SECRET_KEY is not set; using the development signing key.")

    if create_tables:
        # Create database tables
        Base.metadata.create_all(bind=engine)

    app = FastAPI(title="Campus Events API", version="1.0.0")

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    for module in (auth, colleges, events, students, registrations, attendance, feedback, reports):
        app.include_router(module.router, prefix=API_PREFIX)

    @app.get("/")
    async def root():
        return {"message": "Campus Event Management API is running"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "Campus Events API"}

    return app
