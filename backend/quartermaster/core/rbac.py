"""Role-Based Access Control (RBAC) utilities."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from quartermaster.core.security import decode_access_token


class UserRole(str, Enum):
    """User roles for RBAC."""

    ADMIN = "admin"
    COMMANDER = "commander"
    BRIGADE_ASSISTANT = "brigade_assistant"
    STATION_MANAGER = "station_manager"
    UNIT_ASSISTANT = "unit_assistant"


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: The user's id in the identity service.
        role: The user's role.
        id: Alias for user_id.
        unit_id: The unit the user belongs to, if any.
        full_name: The user's display name.
    """

    def __init__(self, user_id: int, role: UserRole,
                 unit_id: Optional[int] = None, full_name: str = ""):
        self.user_id = user_id
        self.id = user_id
        self.role = role
        self.unit_id = unit_id
        self.full_name = full_name


def _payload_from_request(request: Request) -> Optional[dict]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            return decode_access_token(token)
    return None


async def get_current_user(request: Request) -> TokenData:
    """Get the current principal from the Authorization bearer token."""
    payload = _payload_from_request(request)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    role = payload.get("role")

    if user_id is None or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        user_role = UserRole(role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role in token",
        )

    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
        )

    unit_id = payload.get("unit_id")
    return TokenData(
        user_id=user_id,
        role=user_role,
        unit_id=int(unit_id) if unit_id else None,
        full_name=payload.get("full_name", "") or "",
    )


def require_roles(*roles: UserRole):
    """Dependency allowing only the listed roles."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Không có quyền thực hiện thao tác này",
            )
        return current_user

    return role_checker


CurrentUser = Annotated[TokenData, Depends(get_current_user)]
RequireAdmin = Annotated[TokenData, Depends(require_roles(UserRole.ADMIN))]
RequireStationManager = Annotated[
    TokenData, Depends(require_roles(UserRole.ADMIN, UserRole.STATION_MANAGER))
]
RequireSupplyEditor = Annotated[
    TokenData, Depends(require_roles(UserRole.ADMIN, UserRole.UNIT_ASSISTANT))
]
RequireBrigadeAssistant = Annotated[
    TokenData, Depends(require_roles(UserRole.ADMIN, UserRole.BRIGADE_ASSISTANT))
]
