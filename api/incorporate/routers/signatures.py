from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from ..db import get_session
from ..lifecycle import get_signature_by_token, sign_by_token
from ..models import DocumentPublic, SignaturePublic

router = APIRouter()


@router.get("/{token}")
def read_signature(token: str, session: Session = Depends(get_session)):
    signature, document = get_signature_by_token(session, token)
    return {
        "signature": SignaturePublic.model_validate(signature),
        "document": DocumentPublic.model_validate(document),
    }


@router.post("/{token}/sign", response_model=SignaturePublic)
def sign(token: str, request: Request, session: Session = Depends(get_session)):
    ip = request.client.host if request.client else None
    return sign_by_token(session, token, ip_address=ip, user_agent=request.headers.get("user-agent"))
