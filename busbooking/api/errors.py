import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from busbooking.core.errors import BookingError, SeatAlreadyBooked

logger = logging.getLogger(__name__)


async def booking_error_handler(request: Request, exc: BookingError):
    body = {"success": False, "error": exc.kind, "message": exc.message}
    if isinstance(exc, SeatAlreadyBooked):
        # client should reload the seat map instead of retrying the same seat
        body["refreshSeatMap"] = True
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s", request.method, request.url.path, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=body)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={
        "success": False,
        "error": "InvalidRequest",
        "message": "Missing or invalid fields",
        "details": [{"loc": list(e.get("loc", [])), "msg": e.get("msg", "")} for e in exc.errors()],
    })


async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": "HTTPError", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
