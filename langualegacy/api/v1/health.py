"""Health check endpoint: database reachability and which login methods are enabled."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from langualegacy.core.config import Settings, get_settings
from langualegacy.core.database import check_db_connected, get_db
from langualegacy.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """Used by load balancers and monitoring. The session store lives in the same database."""
    login_methods = ["local"]
    if settings.FIREBASE_PROJECT_ID:
        login_methods.append("google")
    if settings.PLATFORM_AUTH_ENABLED:
        login_methods.append("platform")
    return HealthResponse(
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        login_methods=login_methods,
    )
