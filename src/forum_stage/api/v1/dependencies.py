"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from forum_stage.core.security import decode_subject
from forum_stage.db.session import get_db
from forum_stage.models import User
from forum_stage.services.identity import Viewer

# Bearer auth is optional: anonymous callers may read and report.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def get_viewer(
    request: Request,
    db: SessionDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    x_guest_id: Annotated[str | None, Header(max_length=64)] = None,
) -> Viewer:
    """Resolve the caller's identity and capabilities.

    Without a bearer token the caller is anonymous and may only carry a
    guest identifier. A token that is present but invalid is rejected.

    Raises:
        HTTPException: If the token is invalid or names an unknown user
    """
    ip_address = _client_ip(request)
    if credentials is None:
        return Viewer(ip_address=ip_address, guest_id=x_guest_id)

    subject = decode_subject(credentials.credentials)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = db.get(User, subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return Viewer(
        user_id=user.id,
        is_moderator=user.is_moderator,
        ip_address=ip_address,
    )


# Type alias for current viewer dependency
ViewerDep = Annotated[Viewer, Depends(get_viewer)]
