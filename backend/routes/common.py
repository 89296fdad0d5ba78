"""
Shared route helpers - use case wiring and domain error translation
"""
import uuid

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import app_settings, utc_now
from app.maintenance.domain.errors import DomainError, NotFoundError, StoreError, ValidationError
from app.maintenance.infrastructure.sqlalchemy_repository import (
    SqlAlchemyMaintenanceRepository,
    SqlAlchemyNotificationStore,
)


class CamelModel(BaseModel):
    """Request body that accepts the camelCase keys the dashboard sends"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def new_id() -> str:
    return str(uuid.uuid4())


def lifecycle_dependencies(session: AsyncSession) -> dict:
    """Keyword arguments shared by every request lifecycle use case"""
    return {
        "repository": SqlAlchemyMaintenanceRepository(session),
        "notifications": SqlAlchemyNotificationStore(session),
        "id_generator": new_id,
        "clock": utc_now,
        "enforce_forward_transitions": app_settings.enforce_forward_transitions,
    }


def http_error(exc: DomainError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, StoreError):
        return HTTPException(status_code=503, detail=exc.message)
    return HTTPException(status_code=500, detail=exc.message)
