import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import get_current_company, get_current_user
from ..db import get_session
from ..errors import NotFound
from ..models import Company, CompanyPublic, FounderPublic, InvestorPublic, User
from ..onboarding import create_company, get_user_company, onboard_from_conversation, refresh_health_score
from ..schemas import CompanyCreate, CompanyUpdate, ConversationIn
from ..services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=CompanyPublic)
def read_company(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    company = get_user_company(session, user)
    if not company:
        raise NotFound("No company found")
    return company


@router.post("", response_model=CompanyPublic)
def create(payload: CompanyCreate, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return create_company(session, user, payload.model_dump())


@router.patch("", response_model=CompanyPublic)
def update(
    payload: CompanyUpdate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(company, key, value)
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


@router.delete("")
def delete(
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    company_id = company.id
    session.delete(company)
    session.commit()
    try:
        services.retrieval.delete_company(company_id)
    except Exception as e:
        logger.error("Could not remove index entries for company %s: %s", company_id, e)
    return {"ok": True}


@router.get("/health")
def health(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    company = refresh_health_score(session, company)
    return {"health_score": company.health_score}


@router.post("/from-conversation")
def from_conversation(
    payload: ConversationIn,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    result = onboard_from_conversation(session, services, user, payload.conversation)
    return {
        "company": CompanyPublic.model_validate(result["company"]),
        "founders": [FounderPublic.model_validate(f) for f in result["founders"]],
        "investors": [InvestorPublic.model_validate(i) for i in result["investors"]],
        "invitation_failures": result["invitation_failures"],
    }
