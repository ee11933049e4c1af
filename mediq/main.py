import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediq.bootstrap import create_initial_admin
from mediq.config import get_settings
from mediq.core.logging import setup_logging
from mediq.database import create_tables
from mediq.exceptions import ErrorCode, MediQError
from mediq.routers import auth, doctors, health, masters, patients, reception, schedules, voice

settings = get_settings()
setup_logging(level=settings.log_level, json_output=settings.log_json)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)


# Lifespan for startup events
@app.on_event("startup")
def on_startup():
    create_tables()
    create_initial_admin()


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error envelope ---
def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
    )


@app.exception_handler(MediQError)
async def mediq_error_handler(request: Request, exc: MediQError):
    return error_response(exc.status_code, exc.code.value, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request.")
    else:
        message = "Invalid request."
    return error_response(400, ErrorCode.VALIDATION_ERROR.value, message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Unhandled database error on {request.method} {request.url.path}: {exc}")
    return error_response(500, ErrorCode.DATABASE_ERROR.value, "A database error occurred.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    codes = {401: ErrorCode.UNAUTHORIZED, 404: ErrorCode.NOT_FOUND}
    code = codes.get(exc.status_code, ErrorCode.VALIDATION_ERROR)
    return error_response(exc.status_code, code.value, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    # The taxonomy has no generic 500; speech routes report synthesis failures
    if request.url.path.startswith(f"{settings.api_prefix}/voice"):
        code = ErrorCode.SYNTHESIS_FAILED
    else:
        code = ErrorCode.DATABASE_ERROR
    return error_response(500, code.value, "An unexpected error occurred.")


app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(patients.router, prefix=settings.api_prefix)
app.include_router(masters.departments_router, prefix=settings.api_prefix)
app.include_router(masters.waiting_areas_router, prefix=settings.api_prefix)
app.include_router(masters.examinations_router, prefix=settings.api_prefix)
app.include_router(masters.router, prefix=settings.api_prefix)
app.include_router(doctors.router, prefix=settings.api_prefix)
app.include_router(schedules.router, prefix=settings.api_prefix)
app.include_router(reception.router, prefix=settings.api_prefix)  # Public kiosk route
app.include_router(voice.router, prefix=settings.api_prefix)  # Public kiosk route
app.include_router(health.router, prefix=settings.api_prefix)


if __name__ == "__main__":
    uvicorn.run("mediq.main:app", host="0.0.0.0", port=8000, reload=settings.is_development)
