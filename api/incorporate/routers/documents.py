import uuid
from typing import List

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, select

from ..auth import get_current_company
from ..config import WEB_BASE_URL
from ..db import get_session
from ..lifecycle import (
    create_document,
    get_company_document,
    list_signatures,
    send_for_signature,
    update_document,
    validate_document,
)
from ..models import Company, Document, DocumentPublic, SignaturePublic
from ..pdf import render_document_pdf
from ..schemas import DocumentCreate, DocumentUpdate, SendForSignature
from ..services import Services, get_services

router = APIRouter()


@router.get("", response_model=List[DocumentPublic])
def list_documents(company: Company = Depends(get_current_company), session: Session = Depends(get_session)):
    return session.exec(
        select(Document).where(Document.company_id == company.id).order_by(Document.created_at)
    ).all()


@router.post("", response_model=DocumentPublic)
def create(
    payload: DocumentCreate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    return create_document(session, services, company, payload.model_dump())


@router.get("/{document_id}", response_model=DocumentPublic)
def read_document(
    document_id: uuid.UUID,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    return get_company_document(session, company, document_id)


@router.patch("/{document_id}", response_model=DocumentPublic)
def update(
    document_id: uuid.UUID,
    payload: DocumentUpdate,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    document = get_company_document(session, company, document_id)
    return update_document(session, services, document, payload.model_dump(exclude_unset=True))


@router.post("/{document_id}/validate")
def validate(
    document_id: uuid.UUID,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    document = get_company_document(session, company, document_id)
    result = validate_document(session, services, document)
    return result.model_dump()


@router.post("/{document_id}/send-for-signature")
def send(
    document_id: uuid.UUID,
    payload: SendForSignature,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
    services: Services = Depends(get_services),
):
    document = get_company_document(session, company, document_id)
    dispatch = send_for_signature(
        session, services, document, payload.signers, WEB_BASE_URL, requester_name=payload.requester_name
    )
    return {
        "document": DocumentPublic.model_validate(dispatch.document),
        "signatures": [SignaturePublic.model_validate(s) for s in dispatch.signatures],
        "sent": dispatch.sent,
        "failed": dispatch.failed,
    }


@router.get("/{document_id}/signatures", response_model=List[SignaturePublic])
def signatures(
    document_id: uuid.UUID,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    document = get_company_document(session, company, document_id)
    return list_signatures(session, document.id)


@router.get("/{document_id}/pdf")
def download_pdf(
    document_id: uuid.UUID,
    company: Company = Depends(get_current_company),
    session: Session = Depends(get_session),
):
    document = get_company_document(session, company, document_id)
    pdf_bytes = render_document_pdf(document, list_signatures(session, document.id))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{document.id}.pdf"'},
    )
