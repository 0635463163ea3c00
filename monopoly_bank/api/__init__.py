"""
Monopoly Bank API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..errors import LedgerError, ValidationError, NotFoundError, ConflictError, TransientError
from ..logging_config import get_logger, log_action
from .schemas import error_body, ledger_error_body
from .cash import router as cash_router
from .teams import router as teams_router
from .properties import router as properties_router
from .admin import router as admin_router


logger = get_logger("monopoly_bank.api")

# Most specific first: NotFoundError is a ValidationError
ERROR_STATUS = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (TransientError, 503),
)


def status_for(error: LedgerError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(error, error_class):
            return status_code
    return 500


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    log_action(
        logger, "error" if status_code >= 500 else "warning",
        f"{request.method} {request.url.path} rejected: {exc.message}",
        action="reject", resource=request.url.path,
        extra={"error_type": exc.error_type, "status": status_code}
    )
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=status_code, content=ledger_error_body(exc), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    message = "Invalid request: " + "; ".join(problems)
    log_action(logger, "warning", message, action="reject", resource=request.url.path)
    return JSONResponse(status_code=422, content=error_body("ValidationError", message))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("HTTPError", str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Monopoly Bank API",
        description="Team cash and property ledger for an in-person Monopoly game",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    # Player devices call from anywhere on the local network
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.include_router(teams_router, prefix="/teams", tags=["Teams"])
    app.include_router(cash_router, prefix="/cash", tags=["Cash"])
    app.include_router(properties_router, prefix="/properties", tags=["Properties"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "monopoly_bank_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Monopoly Bank API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "teams": "/teams",
                "cash": "/cash",
                "properties": "/properties",
                "admin": "/admin",
            }
        }

    return app


app = create_app()
