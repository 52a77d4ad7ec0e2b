import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..auth import get_current_company
from ..db import get_session
from ..errors import InvalidTransition, NotFound
from ..lifecycle import advance_investor_status
from ..models import Company, Investor, InvestorPublic
from ..onboarding import add_investor
from ..schemas import InvestorCreate, InvestorUpdate
from ..services import Services, get_services

router = APIRouter()


@router.get("", response_model=List[InvestorPublic])
def list_investors(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    return session.exec(
        select(Investor).where(Investor.company_id == company.id).order_by(Investor.created_at)
    ).all()


@router.post("", response_model=InvestorPublic)
def create_investor(
    payload: InvestorCreate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    data = payload.model_dump()
    data["email"] = str(payload.email)
    return add_investor(session, services, company, data)


@router.patch("/{investor_id}", response_model=InvestorPublic)
def update_investor(
    investor_id: uuid.UUID,
    payload: InvestorUpdate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    investor = session.get(Investor, investor_id)
    if not investor or investor.company_id != company.id:
        raise NotFound("Investor not found")
    changes = payload.model_dump(exclude_unset=True)
    target = changes.pop("status", None)
    if target is not None and target != investor.status and not advance_investor_status(investor, target):
        raise InvalidTransition(f"Investor cannot move from {investor.status.value} to {target.value}")
    if "email" in changes:
        changes["email"] = str(changes["email"])
    for key, value in changes.items():
        setattr(investor, key, value)
    session.add(investor)
    session.commit()
    session.refresh(investor)
    return investor
