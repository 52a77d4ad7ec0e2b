from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from .. import config
from ..auth import SESSION_COOKIE, get_current_user
from ..db import get_session
from ..models import User, UserPublic
from ..schemas import LoginRequest
from ..utils import make_session_token

router = APIRouter()


@router.post("/login")
def login(payload: LoginRequest, response: Response, session: Session = Depends(get_session)):
    if not config.DEV_LOGIN_ENABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Password-less login is disabled")
    email = str(payload.email).lower()
    user = session.exec(select(User).where(User.email == email)).first()
    if not user:
        user = User(email=email, first_name=payload.first_name, last_name=payload.last_name)
    else:
        if payload.first_name:
            user.first_name = payload.first_name
        if payload.last_name:
            user.last_name = payload.last_name
    session.add(user)
    session.commit()
    session.refresh(user)

    token = make_session_token({"user_id": str(user.id)})
    response.set_cookie(SESSION_COOKIE, token, max_age=config.SESSION_MAX_AGE, httponly=True, samesite="lax")
    return {"token": token, "user": UserPublic.model_validate(user)}


@router.get("/user", response_model=UserPublic)
def current_user(user: User = Depends(get_current_user)):
    return user


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"ok": True}
