from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portfolio.core.security import decode_token
from portfolio.db import SessionLocal
from portfolio.services.command_gateway import CommandGateway, SqlCommandGateway

# Tokens are issued by the external identity provider; this service only verifies them.
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    subject: str
    permissions: frozenset[str] = field(default_factory=frozenset)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_command_gateway(db: Session = Depends(get_db)) -> CommandGateway:
    return SqlCommandGateway(db)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """Get the authenticated caller from the JWT access token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Validate token type - must be "access" token
    token_type = payload.get("type")
    if token_type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject: str | None = payload.get("sub")
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    permissions = payload.get("permissions") or []
    return Principal(subject=subject, permissions=frozenset(permissions))


def require_permission(*permission_groups: str):
    """
    Create a dependency that requires the caller to hold one of the given permission groups.

    Example:
        Depends(require_permission(PRODUCT_MANAGEMENT))
    """
    def permission_checker(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.permissions.isdisjoint(permission_groups):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return principal

    return permission_checker
