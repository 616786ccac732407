from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional


class APIException(HTTPException):
    code: str = "error"

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


class ValidationError(APIException):
    """Malformed input, outside business hours or insufficient lead time."""
    code = "validation_error"

    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)


class NotFoundError(APIException):
    code = "not_found"

    def __init__(self, detail: str):
        super().__init__(status_code=404, detail=detail)


class ConflictError(APIException):
    """The slot is taken. Callers should regenerate slots before retrying."""
    code = "conflict"

    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)


class InvalidTransitionError(APIException):
    code = "invalid_transition"

    def __init__(self, detail: str):
        super().__init__(status_code=409, detail=detail)


class AvailabilityError(APIException):
    """No provider window covers the requested date/time."""
    code = "availability_error"

    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=detail)


def create_error_response(error_message: str, code: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message,
        "code": code,
    }

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    code = getattr(exc, "code", None) or "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, code)
    )
