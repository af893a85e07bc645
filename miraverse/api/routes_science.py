from fastapi import APIRouter
from pydantic import BaseModel, Field

from miraverse.api.errors import error_response
from miraverse.core.models import GenerateRequest, StudioMode
from miraverse.services import campus_service
from miraverse.services.generate_service import generate

router = APIRouter(prefix="/api/science", tags=["science"])


class DirectionRequest(BaseModel):
    topics: list[str] = Field(default_factory=list)
    profile: campus_service.Profile = Field(default_factory=campus_service.Profile)
    cluster: str | None = None


@router.get("/labs")
async def labs():
    all_labs = list(campus_service.default_labs())
    clusters = campus_service.cluster_labs(all_labs)
    return {
        "labs": len(all_labs),
        "clusters": [
            {
                "name": c.name,
                "topics": c.topics,
                "topicMeta": {t: m.model_dump() for t, m in c.topic_meta.items()},
                "labs": [lab.name for lab in c.labs],
            }
            for c in clusters
        ],
    }


@router.post("/direction")
async def direction(req: DirectionRequest):
    prompt, sources = campus_service.direction_request(
        list(campus_service.default_labs()), req.topics, req.profile, req.cluster
    )
    try:
        resp = await generate(GenerateRequest(mode=StudioMode.CHAT, prompt=prompt, sources=sources))
    except Exception as e:
        return error_response("/api/science/direction", e)
    return resp.to_wire()
