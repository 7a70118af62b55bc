"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from doorstep.config import settings
from doorstep.core.exceptions import AuthenticationError, AuthorizationError, RateLimitError
from doorstep.core.redis_client import CacheManager, RateLimiter, get_redis_client
from doorstep.core.security import decode_access_token
from doorstep.database import get_db
from doorstep.schemas.auth import AuthenticatedUser, UserRole
from doorstep.services.payment_gateway import InstasendGateway
from doorstep.services.user_role_service import UserRoleService

# Security
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthenticatedUser:
    """
    Authenticate the bearer token and resolve the caller's role.

    The role is looked up once here and travels with the request; services
    receive it instead of querying ``user_roles`` again.

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if credentials is None:
        raise AuthenticationError("No authorization header provided")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    user_id_str = payload.get("sub")
    if not isinstance(user_id_str, str):
        raise AuthenticationError("Could not validate credentials")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise AuthenticationError("Invalid user ID format")

    role = await UserRoleService(db).get_role(user_id)
    return AuthenticatedUser(id=user_id, email=payload.get("email"), role=role)


async def require_doctor(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """Allow only callers with the doctor role."""
    if current_user.role != UserRole.DOCTOR:
        raise AuthorizationError("Doctor access required")
    return current_user


async def require_admin(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """Allow only callers with the admin role."""
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return current_user


def get_payment_gateway() -> InstasendGateway:
    """Payment provider adapter built from settings."""
    return InstasendGateway.from_settings()


def get_cache_manager() -> CacheManager:
    """Redis-backed JSON cache."""
    return CacheManager(get_redis_client())


def get_rate_limiter() -> RateLimiter:
    """Redis-backed rate limiter."""
    return RateLimiter(get_redis_client())


async def enforce_payment_rate_limit(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    rate_limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Cap how many payment prompts one user can trigger per minute."""
    allowed = rate_limiter.check_rate_limit(
        f"ratelimit:payments:{current_user.id}",
        limit=settings.payment_rate_limit_per_minute,
        window=60,
    )
    if not allowed:
        raise RateLimitError("Too many payment requests, try again in a minute")


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
CurrentDoctor = Annotated[AuthenticatedUser, Depends(require_doctor)]
CurrentAdmin = Annotated[AuthenticatedUser, Depends(require_admin)]
PaymentGateway = Annotated[InstasendGateway, Depends(get_payment_gateway)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
PaymentRateLimit = Depends(enforce_payment_rate_limit)
