import logging

from sqlmodel import Session, select

from .models import ChatMessage, ChatRole, Company
from .services import Services

logger = logging.getLogger(__name__)

CONTEXT_PASSAGES = 3


def company_context(company: Company) -> str:
    return f"Company: {company.name}, Jurisdiction: {company.jurisdiction.value}"


def list_messages(session: Session, company: Company) -> list[ChatMessage]:
    return list(session.exec(
        select(ChatMessage).where(ChatMessage.company_id == company.id).order_by(ChatMessage.created_at)
    ).all())


def _store_message(session: Session, services: Services, company: Company, role: ChatRole, content: str) -> ChatMessage:
    message = ChatMessage(company_id=company.id, role=role, content=content)
    session.add(message)
    session.commit()
    session.refresh(message)
    try:
        message.index_point_id = services.retrieval.store_chat_message(company.id, message.id, content, role.value)
    except Exception as e:
        logger.error("Could not index chat message %s: %s", message.id, e)
        return message
    session.add(message)
    session.commit()
    session.refresh(message)
    return message


def send_chat_message(session: Session, services: Services, company: Company, content: str) -> tuple[ChatMessage, ChatMessage]:
    user_message = _store_message(session, services, company, ChatRole.user, content)

    passages = services.retrieval.search(company.id, content, CONTEXT_PASSAGES)
    context_strings = [p.content for p in passages if p.content]

    answer = services.generation.answer_question(content, company_context(company), context_strings)
    assistant_message = _store_message(session, services, company, ChatRole.assistant, answer)
    # the assistant commit expired the user row
    session.refresh(user_message)
    return user_message, assistant_message
