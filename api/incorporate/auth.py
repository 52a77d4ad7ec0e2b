import uuid
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, status
from sqlmodel import Session

from .db import get_session
from .errors import NotFound
from .models import Company, User
from .onboarding import get_user_company
from .utils import read_session_token

SESSION_COOKIE = "session"


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    session_cookie: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
    session: Session = Depends(get_session),
) -> User:
    candidate = _bearer(authorization) or session_cookie
    if not candidate:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    payload = read_session_token(candidate)
    if not payload or "user_id" not in payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        user_id = uuid.UUID(payload["user_id"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


def get_current_company(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Company:
    company = get_user_company(session, user)
    if not company:
        raise NotFound("No company found")
    return company
