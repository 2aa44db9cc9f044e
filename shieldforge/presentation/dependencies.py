from functools import lru_cache
from typing import Annotated, Any, Optional

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from shieldforge.application.facade import ShieldForge
from shieldforge.domain.errors import InvalidToken
from shieldforge.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def get_shieldforge() -> ShieldForge:
    return ShieldForge.from_settings(get_settings())


def get_session_cookie_name() -> str:
    return get_settings().session_cookie_name


def get_session_claims(
    request: Request,
    shieldforge: Annotated[ShieldForge, Depends(get_shieldforge)],
    cookie_name: Annotated[str, Depends(get_session_cookie_name)],
    auth: Annotated[Optional[HTTPAuthorizationCredentials], Security(bearer_scheme)],
) -> dict[str, Any] | None:
    """
    Verified claims for the request, or None when there is no token or it
    does not verify. The session cookie wins over the Authorization header.
    """
    token = request.cookies.get(cookie_name)
    if not token and auth is not None:
        token = auth.credentials
    if not token:
        return None

    try:
        return shieldforge.verify_token(token)
    except InvalidToken:
        return None


def require_session_claims(
    claims: Annotated[Optional[dict[str, Any]], Depends(get_session_claims)],
) -> dict[str, Any]:
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="authentication required"
        )
    return claims
