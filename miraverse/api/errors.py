import logging

from fastapi.responses import JSONResponse

from miraverse.core.errors import MiraverseError

logger = logging.getLogger(__name__)


def error_response(where: str, e: Exception) -> JSONResponse:
    """``{"error": ...}`` body for a failed request; the process keeps serving."""
    if isinstance(e, MiraverseError):
        logger.warning("%s failed: %s", where, e.message)
        return JSONResponse(status_code=e.status_code, content={"error": e.message})
    logger.exception("%s failed", where)
    return JSONResponse(status_code=500, content={"error": str(e) or "Generation failed"})


def bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})
