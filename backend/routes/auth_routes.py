"""
Auth Routes - bearer token identity for GearGuard
Tokens are issued by the identity provider that shares SECRET_KEY;
this service only verifies them and resolves the stored user.
"""
from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import app_settings
from app.maintenance.domain.models import SUPERVISOR_ROLES, UserRole, UserSummary
from app.maintenance.infrastructure.sqlalchemy_repository import SqlAlchemyMaintenanceRepository
from app.maintenance.presentation.response_mapper import user_to_response
from database import get_postgres_session

# Security
security = HTTPBearer()

# Create router
auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])


# ==================== HELPER FUNCTIONS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_postgres_session)
) -> UserSummary:
    """Resolve the caller from the bearer token"""
    try:
        payload = jwt.decode(
            credentials.credentials,
            app_settings.secret_key,
            algorithms=[app_settings.jwt_algorithm],
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid access token")

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid access token")

    user = await SqlAlchemyMaintenanceRepository(session).get_user(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_supervisor(current_user: UserSummary) -> None:
    """Admin and manager only"""
    if current_user.role not in SUPERVISOR_ROLES:
        raise HTTPException(status_code=403, detail="Only admins and managers can do this")


def require_admin(current_user: UserSummary) -> None:
    if current_user.role is not UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Only admins can do this")


# ==================== AUTH ROUTES ====================

@auth_router.get("/me")
async def get_me(current_user: UserSummary = Depends(get_current_user)):
    """Return the user behind the bearer token"""
    return user_to_response(current_user)
