# oracle_api/middleware/error_handler.py
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from oracle_api.domains.oracle.schemas import ErrorDetails, ErrorResponse
from oracle_api.exceptions import OracleError

logger = logging.getLogger(__name__)


def error_envelope(status_code: int, message: str, code: str, contract: str) -> JSONResponse:
    body = ErrorResponse(error=message, details=ErrorDetails(code=code, contract=contract))
    return JSONResponse(status_code=status_code, content=body.model_dump())


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Global middleware that turns anything unhandled into the JSON error envelope."""

    async def dispatch(self, request: Request, call_next):
        contract = request.app.state.settings.FEED_ADDRESS
        try:
            return await call_next(request)
        except OracleError as e:
            logger.warning(f"Unhandled oracle error: {e.message}", extra={"code": e.code})
            return error_envelope(e.status_code, e.message, e.code, e.contract)
        except Exception as e:
            logger.error(f"Unhandled error: {e}", exc_info=True)
            return error_envelope(500, "An unexpected error occurred", "INTERNAL_ERROR", contract)
