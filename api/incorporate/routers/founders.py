import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..auth import get_current_company, get_current_user
from ..db import get_session
from ..errors import InvalidTransition, NotFound
from ..lifecycle import advance_founder_status
from ..models import Company, Founder, FounderPublic, User
from ..onboarding import invite_founder
from ..schemas import FounderCreate, FounderUpdate
from ..services import Services, get_services

router = APIRouter()


def _company_founder(session: Session, company: Company, founder_id: uuid.UUID) -> Founder:
    founder = session.get(Founder, founder_id)
    if not founder or founder.company_id != company.id:
        raise NotFound("Founder not found")
    return founder


@router.get("", response_model=List[FounderPublic])
def list_founders(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    return session.exec(
        select(Founder).where(Founder.company_id == company.id).order_by(Founder.created_at)
    ).all()


@router.post("", response_model=FounderPublic)
def add_founder(
    payload: FounderCreate,
    user: User = Depends(get_current_user),
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    data = payload.model_dump()
    data["email"] = str(payload.email)
    return invite_founder(session, services, company, user.display_name, data)


@router.patch("/{founder_id}", response_model=FounderPublic)
def update_founder(
    founder_id: uuid.UUID,
    payload: FounderUpdate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    founder = _company_founder(session, company, founder_id)
    changes = payload.model_dump(exclude_unset=True)
    target = changes.pop("status", None)
    if target is not None and target != founder.status and not advance_founder_status(founder, target):
        raise InvalidTransition(f"Founder cannot move from {founder.status.value} to {target.value}")
    for key, value in changes.items():
        setattr(founder, key, value)
    session.add(founder)
    session.commit()
    session.refresh(founder)
    return founder
