from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..assistant import list_messages, send_chat_message
from ..auth import get_current_company, get_current_user
from ..db import get_session
from ..models import ChatMessage, Company, User
from ..schemas import ChatSend, ConversationIn
from ..services import Services, get_services

router = APIRouter()


@router.get("/messages", response_model=List[ChatMessage])
def messages(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    return list_messages(session, company)


@router.post("/send")
def send(
    payload: ChatSend,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    user_message, assistant_message = send_chat_message(session, services, company, payload.content)
    return {
        "user_message": user_message.model_dump(mode="json"),
        "assistant_message": assistant_message.model_dump(mode="json"),
    }


@router.post("/extract-entities")
def extract_entities(
    payload: ConversationIn,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    entities = services.generation.extract_entities(payload.conversation)
    return entities.model_dump() if entities else None


@router.post("/extract-company")
def extract_company(
    payload: ConversationIn,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    extracted = services.generation.extract_company(payload.conversation)
    return extracted.model_dump() if extracted else None
