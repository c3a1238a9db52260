from fastapi.responses import JSONResponse

from chatrelay.config import settings
from chatrelay.models.errors import GatewayError

CORS_HEADERS = {
    "Access-Control-Allow-Origin": settings.CHATRELAY_CORS_ORIGIN,
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "POST,OPTIONS",
}


def error_response(exc: GatewayError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=CORS_HEADERS,
    )
