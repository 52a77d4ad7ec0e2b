from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..auth import get_current_company
from ..config import WEB_BASE_URL
from ..db import get_session
from ..models import Company
from ..reconcile import reconcile_notifications
from ..services import Services, get_services

router = APIRouter()


@router.post("/reconcile")
def reconcile(
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    return reconcile_notifications(session, services, WEB_BASE_URL, company_id=company.id)
