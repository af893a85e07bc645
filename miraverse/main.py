from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from miraverse.core.config import settings
from miraverse.core.logging import setup_logging

from miraverse.api.routes_generate import router as generate_router
from miraverse.api.routes_ingest import router as ingest_router
from miraverse.api.routes_media import router as media_router
from miraverse.api.routes_science import router as science_router


def create_app():
    setup_logging()

    app = FastAPI(title=settings.APP_NAME)

    # Allow the Streamlit UI (or any browser front-end) to call the API from localhost
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(generate_router)
    app.include_router(ingest_router)
    app.include_router(media_router)
    app.include_router(science_router)

    @app.get("/health")
    async def health():
        checks = {
            "llm_provider": settings.LLM_PROVIDER,
            "google_api_key": bool(settings.GOOGLE_API_KEY),
        }
        return {"ok": True, "app": settings.APP_NAME, "env": settings.ENV, "deps": checks}

    return app


app = create_app()
