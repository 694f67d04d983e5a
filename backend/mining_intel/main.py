from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.logging import configure_logging
from .api.routes_companies import router as companies_router

configure_logging()
settings = get_settings()


def _cors_origins() -> list[str]:
    origins = [o.strip() for o in (settings.FRONTEND_ORIGIN or "").split(",") if o.strip()]
    if settings.ENV.lower() == "prod":
        if not origins:
            raise RuntimeError("FRONTEND_ORIGIN must be set in production.")
        return origins
    if settings.CORS_ALLOW_ALL_ORIGINS or not origins:
        return ["*"]
    return origins


app = FastAPI(title="Mining Intelligence API")

# The dashboard only reads the catalog and submits batches
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(companies_router, prefix=settings.API_PREFIX)
