import json

from fastapi import APIRouter, Request
from pydantic import ValidationError

from miraverse.core.models import GenerateRequest
from miraverse.api.errors import bad_request, error_response
from miraverse.services.generate_service import generate

router = APIRouter(prefix="/api", tags=["generate"])


async def read_generate_request(request: Request) -> GenerateRequest | None:
    """The request body, or None when mode or prompt is missing or malformed."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(body, dict) or not body.get("prompt") or not body.get("mode"):
        return None
    try:
        return GenerateRequest.model_validate(body)
    except ValidationError:
        return None


@router.post("/generate")
async def generate_route(request: Request):
    req = await read_generate_request(request)
    if req is None:
        return bad_request("mode и prompt обязательны")
    try:
        resp = await generate(req)
    except Exception as e:
        return error_response("/api/generate", e)
    return resp.to_wire()
