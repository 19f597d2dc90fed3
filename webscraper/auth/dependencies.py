"""Session validation (FastAPI dependency)."""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from webscraper.api.deps import get_settings_state, get_user_store
from webscraper.api.schemas import User
from webscraper.auth.tokens import InvalidTokenError, decode_session_token
from webscraper.config import Settings
from webscraper.store.redis import UserStore

_bearer = HTTPBearer(auto_error=False)


async def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    settings: Settings = Depends(get_settings_state),
    users: UserStore = Depends(get_user_store),
) -> User:
    """Resolve the signed-in user from the session cookie or a bearer token."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token and credentials is not None:
        token = credentials.credentials
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        user_id = decode_session_token(token, settings)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
        )

    user = await users.get(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
        )
    return user
