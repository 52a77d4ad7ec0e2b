import logging

from sqlmodel import Session, select

from .errors import GenerationError, NotificationError, ValidationProblem
from .lifecycle import create_document
from .llm import ExtractedEntities
from .models import (
    Company,
    Document,
    DocumentStatus,
    DocumentType,
    Founder,
    FounderStatus,
    Investor,
    SignatureStatus,
    User,
    get_datetime_utc,
)
from .services import Services

logger = logging.getLogger(__name__)


def get_user_company(session: Session, user: User) -> Company | None:
    return session.exec(select(Company).where(Company.user_id == user.id)).first()


def create_company(session: Session, user: User, data: dict) -> Company:
    if get_user_company(session, user):
        raise ValidationProblem("You already have a company")
    company = Company.model_validate(data, update={"user_id": user.id})
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


def deliver_invitation(session: Session, services: Services, founder: Founder, company: Company, inviter_name: str):
    try:
        services.notifier.send_founder_invitation(
            founder.email,
            founder.display_name,
            company.name,
            inviter_name,
        )
    except NotificationError as e:
        founder.delivery_error = e.message
        session.add(founder)
        session.commit()
        raise
    founder.invitation_sent_at = get_datetime_utc()
    founder.delivery_error = None
    session.add(founder)
    session.commit()


def _persist_founder(session: Session, company: Company, data: dict) -> Founder:
    founder = Founder.model_validate(data, update={"company_id": company.id, "status": FounderStatus.invited})
    session.add(founder)
    session.commit()
    session.refresh(founder)
    return founder


def invite_founder(session: Session, services: Services, company: Company, inviter_name: str, data: dict) -> Founder:
    founder = _persist_founder(session, company, data)
    deliver_invitation(session, services, founder, company, inviter_name)
    session.refresh(founder)
    return founder


def add_investor(session: Session, services: Services, company: Company, data: dict) -> Investor:
    investor = Investor.model_validate(data, update={"company_id": company.id, "status": SignatureStatus.pending})
    session.add(investor)
    session.commit()
    session.refresh(investor)

    # The investor row stays even if drafting fails; safe_document_id is then left empty.
    try:
        content = services.generation.draft_document(
            "SAFE",
            company,
            {"investor": {"name": investor.name, "email": investor.email}, "amount": investor.amount},
        )
    except GenerationError:
        logger.error("SAFE drafting failed for investor %s", investor.id)
        raise
    safe = create_document(session, services, company, {
        "type": DocumentType.safe,
        "title": f"SAFE - {investor.name}",
        "content": content,
    })
    investor.safe_document_id = safe.id
    session.add(investor)
    session.commit()
    session.refresh(investor)
    return investor


def compute_health_score(founders: list[Founder], documents: list[Document]) -> int:
    missing = 0
    if not founders:
        missing += 1
    if any(d.status == DocumentStatus.drafting for d in documents):
        missing += 1
    signing = [d for d in documents if d.status == DocumentStatus.signing]
    if signing:
        missing += 1
    pending = len([f for f in founders if f.status == FounderStatus.invited]) + len(signing)
    return max(0, 100 - (missing * 15 + pending * 10))


def refresh_health_score(session: Session, company: Company) -> Company:
    founders = list(session.exec(select(Founder).where(Founder.company_id == company.id)).all())
    documents = list(session.exec(select(Document).where(Document.company_id == company.id)).all())
    company.health_score = compute_health_score(founders, documents)
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


def _equity(value: float | None) -> int | None:
    if value is None:
        return None
    if not 0 <= value <= 100:
        raise ValidationProblem(f"Equity percentage must be between 0 and 100, got {value:g}")
    return round(value)


def onboard_from_conversation(session: Session, services: Services, user: User, conversation: str) -> dict:
    """Create a company with its founders and investors from one dictated conversation."""
    if get_user_company(session, user):
        raise ValidationProblem("You already have a company")
    entities: ExtractedEntities | None = services.generation.extract_entities(conversation)
    if entities is None:
        raise ValidationProblem("Could not extract company details, please enter them manually")
    founder_equity = [_equity(extracted.equity_percentage) for extracted in entities.founders]

    company = create_company(session, user, entities.company.model_dump())
    founders = []
    invitation_failures = 0
    for extracted, equity in zip(entities.founders, founder_equity):
        data = {
            "email": extracted.email,
            "first_name": extracted.first_name,
            "last_name": extracted.last_name,
            "role": extracted.role,
            "equity_percentage": equity,
        }
        founder = _persist_founder(session, company, data)
        try:
            deliver_invitation(session, services, founder, company, user.display_name)
        except NotificationError:
            invitation_failures += 1
        session.refresh(founder)
        founders.append(founder)

    investors = []
    for extracted in entities.investors:
        investors.append(add_investor(session, services, company, {
            "name": extracted.name,
            "email": extracted.email,
            "amount": round(extracted.amount),
        }))

    refresh_health_score(session, company)
    return {
        "company": company,
        "founders": founders,
        "investors": investors,
        "invitation_failures": invitation_failures,
    }
