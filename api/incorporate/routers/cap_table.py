from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..auth import get_current_company
from ..db import get_session
from ..models import CapTableEntry, Company
from ..schemas import CapTableEntryCreate

router = APIRouter()


@router.get("", response_model=List[CapTableEntry])
def list_entries(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    return session.exec(
        select(CapTableEntry).where(CapTableEntry.company_id == company.id).order_by(CapTableEntry.created_at)
    ).all()


@router.post("", response_model=CapTableEntry)
def create_entry(
    payload: CapTableEntryCreate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    entry = CapTableEntry.model_validate(payload.model_dump(), update={"company_id": company.id})
    session.add(entry)
    session.commit()
    session.refresh(entry)
    return entry
