from typing import Final

from fastapi import status
from fastapi.responses import JSONResponse

from vkbridge.api.schemas import ErrorResponse

VK_WEBHOOK_MISCONFIGURED: Final[str] = "VK_WEBHOOK_MISCONFIGURED"


def build_error_response(*, status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse.model_validate({"error": {"code": code, "message": message}})
    return JSONResponse(status_code=status_code, content=payload.model_dump(mode="json"))


def webhook_misconfigured_response() -> JSONResponse:
    """503 returned while no callback secret is set and unsigned callbacks are refused.

    VK retries failed deliveries, so callbacks are not lost while the
    operator fixes the configuration.
    """
    return build_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        code=VK_WEBHOOK_MISCONFIGURED,
        message="VK_SECRET_KEY is required unless ALLOW_INSECURE_VK_WEBHOOK=true",
    )
