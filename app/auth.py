from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import get_settings
from app.errors import Unauthenticated
from app.schemas.user import Identity, TokenPayload

settings = get_settings()
security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> TokenPayload | None:
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
        return TokenPayload(
            sub=payload["sub"],
            email=payload.get("email"),
            name=payload.get("name"),
            exp=payload["exp"],
        )
    except (JWTError, KeyError):
        return None


def verify_token(token: str) -> Identity:
    """Bearer token -> Identity, or Unauthenticated."""
    payload = decode_token(token)
    if not payload or not payload.sub:
        raise Unauthenticated("Invalid or expired token")
    return Identity(user_id=payload.sub, email=payload.email, name=payload.name)


def get_optional_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity | None:
    """No header -> None (anonymous). A header that does not verify is still a 401."""
    if not credentials:
        return None
    try:
        return verify_token(credentials.credentials)
    except Unauthenticated as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def get_current_identity(
    identity: Identity | None = Depends(get_optional_identity),
) -> Identity:
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_current_identity_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """Caller's email must be listed in ADMIN_EMAILS."""
    if not identity.email or identity.email.lower() not in settings.admin_email_set:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admin can access.",
        )
    return identity
