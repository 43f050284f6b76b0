from datetime import datetime, timezone

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from joserfc import jwt
from joserfc.errors import BadSignatureError, DecodeError
from pydantic import BaseModel, ValidationError

from .auth.jwt_utils import key
from .config import settings
from .cron import CronManager
from .logger import logger
from .models import UserPublic, UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


class JwtClaims(BaseModel):
    sub: str  # username
    username: str
    role: str
    exp: datetime  # expiration time


class TokenValidationError(Exception):
    """Intermediate exception for token validation errors"""

    pass


def _validate_token_and_get_user(token: str) -> UserPublic:
    """
    Resolve a bearer token to the calling user.

    Raises:
        TokenValidationError: If token validation fails
    """
    # The master token acts as a privileged SYSTEM user
    if token == settings.master_token:
        logger.info("Master token used; acting as SYSTEM user")
        return get_system_user()

    try:
        payload = jwt.decode(token, key, [settings.jwt.algorithm])
    except (BadSignatureError, DecodeError):
        raise TokenValidationError("Could not decode jwt token")
    except Exception as e:
        raise TokenValidationError(f"Unexpected error decoding token: {e}")

    try:
        jwt_claims = JwtClaims.model_validate(payload.claims)
    except ValidationError as e:
        raise TokenValidationError(f"JWT token invalid: {e}")

    if jwt_claims.exp < datetime.now(timezone.utc):
        raise TokenValidationError("Token expired")

    try:
        role = UserRole(jwt_claims.role)
    except ValueError:
        raise TokenValidationError(f"Unknown role '{jwt_claims.role}'")

    return UserPublic(username=jwt_claims.username, role=role)


def get_current_user(token: str = Depends(oauth2_scheme)) -> UserPublic:
    """
    HTTP authentication dependency.
    Validates the bearer token from the Authorization header.
    """
    try:
        return _validate_token_and_get_user(token)
    except TokenValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


class RequireRole:
    def __init__(self, roles: tuple[UserRole, ...] | UserRole):
        self.roles = roles if isinstance(roles, tuple) else (roles,)

    async def __call__(self, user: UserPublic = Depends(get_current_user)):
        if user.role not in self.roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions"
            )
        return user


require_admin = RequireRole(UserRole.ADMIN)


def get_system_user() -> UserPublic:
    """Synthetic admin used when the master token is presented instead of a JWT."""
    return UserPublic(username="SYSTEM", role=UserRole.ADMIN)


def get_cron_manager(request: Request) -> CronManager:
    """The application's cron manager, created in the lifespan handler."""
    return request.app.state.cron_manager
