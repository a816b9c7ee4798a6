"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from langualegacy.api.v1 import router as v1_router
from langualegacy.core.config import settings

app = FastAPI(
    title="LanguaLegacy API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Session cookies need credentialed CORS, which rules out a wildcard origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "LanguaLegacy API"}
