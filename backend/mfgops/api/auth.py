import logging
import secrets
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from mfgops.domain.iam import permissions as iam_permissions
from mfgops.infra.logging import update_log_context

logger = logging.getLogger(__name__)


class AuthException(HTTPException):
    def __init__(self, *, reason: str, detail: str = "Invalid authentication") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Basic"},
        )
        self.reason = reason


class Role(str, Enum):
    ADMIN = "admin"
    STORE_MANAGER = "store_manager"
    PURCHASER = "purchaser"
    OPERATOR = "operator"
    VIEWER = "viewer"


@dataclass
class Identity:
    username: str
    role: Role
    auth_method: str = "basic"

    @property
    def actor_id(self) -> str:
        return self.username

    @property
    def permission_keys(self) -> set[str]:
        return iam_permissions.permissions_for_role(self.role.value)


@dataclass
class _ConfiguredUser:
    username: str
    password: str
    role: Role


security = HTTPBasic(auto_error=False)


def resolve_settings(request: Request):
    app_settings = getattr(request.app.state, "app_settings", None)
    if app_settings is None:
        from mfgops.settings import settings as app_settings
    return app_settings


def configured_users(app_settings) -> list[_ConfiguredUser]:
    configured: list[_ConfiguredUser] = []
    for role in Role:
        username = getattr(app_settings, f"{role.value}_basic_username", None)
        password = getattr(app_settings, f"{role.value}_basic_password", None)
        if username and password:
            configured.append(_ConfiguredUser(username=username, password=password, role=role))
    return configured


def _authenticate_credentials(
    app_settings, credentials: HTTPBasicCredentials | None
) -> Identity:
    configured = configured_users(app_settings)
    if not configured:
        logger.warning(
            "auth_unconfigured",
            extra={"extra": {"configured_user_count": 0}},
        )
        raise AuthException(reason="unconfigured_credentials")

    if not credentials:
        raise AuthException(reason="missing_credentials")

    for user in configured:
        username_ok = secrets.compare_digest(credentials.username.encode(), user.username.encode())
        password_ok = secrets.compare_digest(credentials.password.encode(), user.password.encode())
        if username_ok and password_ok:
            return Identity(username=user.username, role=user.role)

    logger.info(
        "auth_failed",
        extra={"extra": {"reason": "invalid_credentials", "username": credentials.username}},
    )
    raise AuthException(reason="invalid_credentials")


async def get_identity(
    request: Request, credentials: HTTPBasicCredentials | None = Depends(security)
) -> Identity:
    cached: Identity | None = getattr(request.state, "identity", None)
    if cached:
        return cached
    identity = _authenticate_credentials(resolve_settings(request), credentials)
    request.state.identity = identity
    update_log_context(actor=identity.actor_id, role=identity.role.value)
    return identity


def require_permission(permission_key: str):
    """Dependency factory: authenticate, then require a single permission key."""

    async def _require(identity: Identity = Depends(get_identity)) -> Identity:
        if permission_key not in identity.permission_keys:
            logger.info(
                "permission_denied",
                extra={
                    "extra": {
                        "actor": identity.actor_id,
                        "role": identity.role.value,
                        "permission": permission_key,
                    }
                },
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden: requires {permission_key} permission",
            )
        return identity

    return _require
