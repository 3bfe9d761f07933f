import uvicorn as uvicorn
from fastapi import FastAPI, Request, HTTPException, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
import redis.asyncio as redis
import logging

from storecart.config.settings import settings
from storecart.config.database import startDB
from storecart.commonUtils.cartErrors import CartError
from storecart.commonUtils.enumUtils import ErrorKind
from storecart.schedulers.reconciliation_scheduler import reconciliation_scheduler
from storecart.routes import userRoute, productRoute, cartRoute
from storecart.adminUtils.adminRoutes import reconciliationRoutes

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# How the HTTP boundary reports each cart failure kind
ERROR_KIND_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
    ErrorKind.TIMEOUT: 504,
}


# Initialize FastAPI app with lifespan context
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database connection and models (startup logic)
    client = await startDB()

    # Initialize rate limiter
    if settings.RATE_LIMITING_ENABLED:
        redis_connection = redis.from_url(settings.REDIS_URL, encoding="utf-8")
        await FastAPILimiter.init(redis_connection)

    # Start periodic checkout reconciliation
    if settings.RECONCILIATION_ENABLED:
        reconciliation_scheduler.start_periodic_reconciliation()
    else:
        logger.info("Checkout reconciliation scheduler disabled")

    yield

    # Shutdown logic
    if settings.RECONCILIATION_ENABLED:
        reconciliation_scheduler.stop_periodic_reconciliation()
    if settings.RATE_LIMITING_ENABLED:
        await FastAPILimiter.close()
    client.close()


app = FastAPI(
    title="storecart",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc"
)


def error_response(request: Request, status_code: int, exc: Exception, kind: str, message, detail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "type": exc.__class__.__name__,
                "kind": kind,
                "message": message,
                "detail": detail,
                "path": request.url.path,
            }
        }
    )


async def cart_error_handler(request: Request, exc: CartError):
    """Translate a classified cart failure into its HTTP status"""
    status_code = ERROR_KIND_STATUS.get(exc.kind, 500)
    if status_code == 500:
        logger.error(f"Cart operation failed on {request.url.path}: {exc.message}")
    return error_response(request, status_code, exc, exc.kind.value, exc.message, exc.message)


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler that formats all errors consistently"""
    status_code = 500
    message = "An error occurred"
    detail = str(exc)

    # Handle HTTP exceptions (404, 401, etc.)
    if isinstance(exc, HTTPException):
        status_code = exc.status_code
        message = exc.detail
        detail = exc.detail

    # Handle validation errors
    elif isinstance(exc, RequestValidationError):
        status_code = 422
        message = "Validation error"
        detail = jsonable_encoder(exc.errors())

    # Log unexpected errors
    if status_code == 500:
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        message = "Internal server error"
        # Don't expose internal details in production
        detail = "Please contact support"

    kind = ErrorKind.INTERNAL.value if status_code >= 500 else "http_error"
    response = error_response(request, status_code, exc, kind, message, detail)
    if isinstance(exc, HTTPException) and exc.headers:
        response.headers.update(exc.headers)
    return response


app.add_exception_handler(CartError, cart_error_handler)
app.add_exception_handler(HTTPException, global_exception_handler)
app.add_exception_handler(RequestValidationError, global_exception_handler)
# Register the handler for all exceptions
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def rate_limit(times: int, seconds: int = 60) -> list:
    if not settings.RATE_LIMITING_ENABLED:
        return []
    return [Depends(RateLimiter(times=times, seconds=seconds))]


app.include_router(userRoute.router, prefix='/api/v1',
                   dependencies=rate_limit(100))
app.include_router(productRoute.router, tags=['products'], prefix='/api/v1',
                   dependencies=rate_limit(100))
app.include_router(cartRoute.router, tags=['cart'], prefix='/api/v1',
                   dependencies=rate_limit(100))
app.include_router(reconciliationRoutes.router, tags=['AdminUtils'], prefix='/api/v1/admin',
                   dependencies=rate_limit(5))


@app.get("/api/healthchecker", dependencies=rate_limit(100))
def root():
    return {"message": "Welcome to storecart"}


if __name__ == "__main__":
    uvicorn.run("storecart.main:app", host="0.0.0.0", port=5001, reload=True, log_level="info")
