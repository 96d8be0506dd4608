import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from subagent_hub.config import settings
from subagent_hub.exceptions import UnauthorizedError

_bearer = HTTPBearer(auto_error=False)


class AuthenticatedUser(BaseModel):
    id: str
    email: str | None = None
    username: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None

    def profile_attrs(self) -> dict:
        return {
            "username": self.username,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
        }


def user_from_claims(claims: dict) -> AuthenticatedUser:
    subject = claims.get("sub")
    if not subject:
        raise UnauthorizedError("Token has no subject")

    metadata = claims.get("user_metadata") or {}
    return AuthenticatedUser(
        id=str(subject),
        email=claims.get("email"),
        username=metadata.get("user_name") or metadata.get("preferred_username"),
        full_name=metadata.get("full_name") or metadata.get("name"),
        avatar_url=metadata.get("avatar_url"),
    )


def _authenticate(request: Request, token: str) -> AuthenticatedUser:
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired") from None
    except jwt.InvalidTokenError:
        raise UnauthorizedError("Invalid token") from None

    user = user_from_claims(claims)
    request.state.user = user
    return user


async def verify_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),  # noqa: B008
) -> AuthenticatedUser:
    if credentials is None:
        raise UnauthorizedError()
    return _authenticate(request, credentials.credentials)


async def optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),  # noqa: B008
) -> AuthenticatedUser | None:
    """The caller when a bearer token is sent, otherwise ``None``. A bad token still fails."""
    if credentials is None:
        return None
    return _authenticate(request, credentials.credentials)
