from typing import Optional, Annotated
from fastapi import Header, HTTPException
from config.settings import settings
from models.enums import Role
from schemas.auth import Actor
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]
UserIdHeader = Annotated[Optional[str], Header(alias="X-User-Id")]
UserRoleHeader = Annotated[Optional[str], Header(alias="X-User-Role")]
UserNameHeader = Annotated[Optional[str], Header(alias="X-User-Name")]


def require_api_token(authorization: AuthHeader = None):
    # no token configured -> gateway auth disabled (dev / tests)
    if not settings.API_TOKEN:
        return None

    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # "Bearer <token>"
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail="Invalid Authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid auth scheme",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # constant-time compare
    if not hmac.compare_digest(token.strip(), settings.API_TOKEN):
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"client": "gateway"}


def get_optional_actor(
    user_id: UserIdHeader = None,
    user_role: UserRoleHeader = None,
    user_name: UserNameHeader = None,
) -> Optional[Actor]:
    if not user_id:
        return None
    try:
        role = Role((user_role or "").strip().upper())
    except ValueError:
        raise HTTPException(status_code=401, detail="Unknown user role")
    return Actor(id=user_id.strip(), role=role, name=user_name)


def get_current_actor(
    user_id: UserIdHeader = None,
    user_role: UserRoleHeader = None,
    user_name: UserNameHeader = None,
) -> Actor:
    actor = get_optional_actor(user_id, user_role, user_name)
    if actor is None:
        raise HTTPException(status_code=401, detail="You must be logged in")
    return actor
