import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stylist.config import get_settings
from stylist.outfit.router import router as outfit_router

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Stylist")

app.include_router(outfit_router, prefix="/ai")


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    settings = get_settings()
    judge_status = "configured" if settings.openrouter_api_key else "fallback_only"
    return {"status": "healthy", "judge": judge_status}


# ============================================================
# Custom error handlers
# ============================================================


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Request validation error handler

    - missing field / wrong type -> 400 Bad Request
    - value constraint violated (ge, le, enum ...) -> 422 Unprocessable Entity
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    error_type = first_error.get("type", "")
    loc = first_error.get("loc", [])

    field_name = ".".join(str(part) for part in loc[1:]) if len(loc) > 1 else ""
    message = _get_error_message(error_type, field_name)

    if "missing" in error_type or "type" in error_type:
        status_code = status.HTTP_400_BAD_REQUEST
        error_code = "INVALID_REQUEST"
    else:
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        error_code = "VALIDATION_ERROR"

    return JSONResponse(
        status_code=status_code,
        content={"success": False, "errorCode": error_code, "message": message},
    )


def _get_error_message(error_type: str, field_name: str) -> str:
    if not field_name:
        return "Request body is missing or not valid JSON"

    if "missing" in error_type:
        return f"{field_name} is required"

    if "type" in error_type:
        return f"{field_name} has the wrong type"

    if "enum" in error_type:
        return f"{field_name} is not an allowed value"

    return f"{field_name} is not valid"
