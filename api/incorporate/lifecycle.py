"""Document lifecycle: drafting -> validating -> signing -> active, plus signatures.

Statuses only ever move forward. A document becomes active when a fresh read of
all of its signatures shows every one signed; the check is re-run on every
signature so out-of-order and concurrent signing converge on the same result.
"""
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .errors import AlreadySigned, InvalidTransition, NotFound, NotificationError, ValidationProblem
from .llm import ValidationResult
from .models import (
    Company,
    Document,
    DocumentSignature,
    DocumentStatus,
    Founder,
    FounderStatus,
    Investor,
    SignatureStatus,
    SignerType,
    get_datetime_utc,
)
from .services import Services
from .utils import generate_magic_token

logger = logging.getLogger(__name__)

DOCUMENT_STATUS_ORDER = [
    DocumentStatus.drafting,
    DocumentStatus.validating,
    DocumentStatus.signing,
    DocumentStatus.active,
]
SIGNATURE_STATUS_ORDER = [SignatureStatus.pending, SignatureStatus.sent, SignatureStatus.signed]
FOUNDER_STATUS_ORDER = [FounderStatus.invited, FounderStatus.pending_signature, FounderStatus.active]


def is_forward(order: list, current, target) -> bool:
    return order.index(target) > order.index(current)


def advance_document_status(document: Document, target: DocumentStatus) -> bool:
    """Move the document to target if that is a step forward. Returns True on change."""
    if not is_forward(DOCUMENT_STATUS_ORDER, document.status, target):
        return False
    document.status = target
    if target == DocumentStatus.active:
        document.activated_at = get_datetime_utc()
    return True


def advance_founder_status(founder: Founder, target: FounderStatus) -> bool:
    if not is_forward(FOUNDER_STATUS_ORDER, founder.status, target):
        return False
    founder.status = target
    return True


def advance_investor_status(investor: Investor, target: SignatureStatus) -> bool:
    if not is_forward(SIGNATURE_STATUS_ORDER, investor.status, target):
        return False
    investor.status = target
    return True


def all_signed(signatures) -> bool:
    signatures = list(signatures)
    return bool(signatures) and all(s.status == SignatureStatus.signed for s in signatures)


# ---------- lookups ----------

def get_company_document(session: Session, company: Company, document_id: uuid.UUID) -> Document:
    document = session.get(Document, document_id)
    if not document or document.company_id != company.id:
        raise NotFound("Document not found")
    return document


def list_signatures(session: Session, document_id: uuid.UUID) -> list[DocumentSignature]:
    return list(session.exec(
        select(DocumentSignature)
        .where(DocumentSignature.document_id == document_id)
        .order_by(DocumentSignature.created_at)
    ).all())


def get_signature_by_token(session: Session, token: str) -> tuple[DocumentSignature, Document]:
    signature = session.exec(select(DocumentSignature).where(DocumentSignature.magic_token == token)).first()
    if not signature:
        raise NotFound("Signature request not found or expired")
    document = session.get(Document, signature.document_id)
    if not document:
        raise NotFound("Signature request not found or expired")
    return signature, document


def _match_founder(session: Session, company_id: uuid.UUID, email: str) -> Founder | None:
    founders = session.exec(select(Founder).where(Founder.company_id == company_id)).all()
    for founder in founders:
        if founder.email.lower() == email.lower():
            return founder
    return None


def _match_investor(session: Session, document: Document, email: str) -> Investor | None:
    investor = session.exec(select(Investor).where(Investor.safe_document_id == document.id)).first()
    if investor and investor.email.lower() == email.lower():
        return investor
    return None


# ---------- indexing ----------

def index_document(services: Services, document: Document) -> str | None:
    if not document.content:
        return document.index_point_id
    try:
        return services.retrieval.store_document(
            document.company_id,
            document.id,
            document.content,
            {"title": document.title, "type": document.type.value},
        )
    except Exception as e:
        logger.error("Could not index document %s: %s", document.id, e)
        return document.index_point_id


# ---------- operations ----------

def create_document(session: Session, services: Services, company: Company, data: dict) -> Document:
    document = Document.model_validate(
        data, update={"company_id": company.id, "status": DocumentStatus.drafting}
    )
    session.add(document)
    session.commit()
    session.refresh(document)
    if document.content:
        document.index_point_id = index_document(services, document)
        session.add(document)
        session.commit()
        session.refresh(document)
    return document


def update_document(session: Session, services: Services, document: Document, changes: dict) -> Document:
    content_changed = "content" in changes and changes["content"] and changes["content"] != document.content
    for key, value in changes.items():
        setattr(document, key, value)
    session.add(document)
    session.commit()
    session.refresh(document)
    if content_changed:
        document.index_point_id = index_document(services, document)
        session.add(document)
        session.commit()
        session.refresh(document)
    return document


def validate_document(session: Session, services: Services, document: Document) -> ValidationResult:
    result = services.generation.validate_document(document.type.value, document.content or "")
    try:
        document.validation_errors = list(result.issues)
        if result.valid:
            advance_document_status(document, DocumentStatus.validating)
        session.add(document)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Could not persist validation result for document %s: %s", document.id, e)
    return result


@dataclass
class SignatureDispatch:
    document: Document
    signatures: list[DocumentSignature] = field(default_factory=list)
    sent: int = 0
    failed: int = 0


def deliver_signature_request(
    session: Session,
    services: Services,
    signature: DocumentSignature,
    document: Document,
    base_url: str,
    requester_name: str | None = None,
) -> bool:
    """Send one signature email and record the outcome on the row."""
    try:
        services.notifier.send_signature_request(
            signature.signer_email,
            signature.signer_name,
            document.title,
            signature.magic_token,
            base_url,
            requester_name=requester_name,
        )
    except NotificationError as e:
        signature.delivery_error = e.message
        session.add(signature)
        session.commit()
        return False

    if signature.status == SignatureStatus.pending:
        signature.status = SignatureStatus.sent
    signature.notified_at = get_datetime_utc()
    signature.delivery_error = None
    session.add(signature)

    if signature.signer_type == SignerType.founder:
        founder = _match_founder(session, document.company_id, signature.signer_email)
        if founder and advance_founder_status(founder, FounderStatus.pending_signature):
            session.add(founder)
    elif signature.signer_type == SignerType.investor:
        investor = _match_investor(session, document, signature.signer_email)
        if investor and advance_investor_status(investor, SignatureStatus.sent):
            session.add(investor)
    session.commit()
    return True


def send_for_signature(
    session: Session,
    services: Services,
    document: Document,
    signers: list,
    base_url: str,
    requester_name: str | None = None,
) -> SignatureDispatch:
    if not signers:
        raise ValidationProblem("Signers array is required")
    if document.status == DocumentStatus.active:
        raise InvalidTransition("Document is already active")

    # persist every request first so an interrupted send can be retried later
    dispatch = SignatureDispatch(document=document)
    for signer in signers:
        email = str(signer.email)
        signer_type = SignerType.external
        if _match_founder(session, document.company_id, email):
            signer_type = SignerType.founder
        elif _match_investor(session, document, email):
            signer_type = SignerType.investor
        signature = DocumentSignature(
            document_id=document.id,
            signer_email=email,
            signer_name=signer.name,
            signer_type=signer_type,
            status=SignatureStatus.pending,
            magic_token=generate_magic_token(),
        )
        session.add(signature)
        dispatch.signatures.append(signature)
    session.commit()

    for signature in dispatch.signatures:
        session.refresh(signature)
        if deliver_signature_request(session, services, signature, document, base_url, requester_name):
            dispatch.sent += 1
        else:
            dispatch.failed += 1

    advance_document_status(document, DocumentStatus.signing)
    session.add(document)
    session.commit()
    session.refresh(document)
    for signature in dispatch.signatures:
        session.refresh(signature)
    logger.info(
        "Document %s sent for signature: %s delivered, %s failed", document.id, dispatch.sent, dispatch.failed
    )
    return dispatch


def reconcile_document_activation(session: Session, document: Document) -> bool:
    """Re-read every signature of the document and activate it when all are signed."""
    session.refresh(document)
    if not all_signed(list_signatures(session, document.id)):
        return False
    if document.status == DocumentStatus.active:
        return False
    now = get_datetime_utc()
    # conditional write so concurrent final signers activate the document once
    result = session.connection().execute(
        update(Document)
        .where(Document.id == document.id, Document.status != DocumentStatus.active)
        .values(status=DocumentStatus.active, activated_at=now, updated_at=now)
    )
    if result.rowcount != 1:
        session.rollback()
        return False
    session.commit()
    session.refresh(document)
    logger.info("Document %s is now active", document.id)
    return True


def sign_by_token(
    session: Session,
    token: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> DocumentSignature:
    signature, document = get_signature_by_token(session, token)
    if signature.status == SignatureStatus.signed:
        raise AlreadySigned()

    # single conditional write so two concurrent submissions cannot both succeed
    result = session.connection().execute(
        update(DocumentSignature)
        .where(DocumentSignature.id == signature.id, DocumentSignature.status != SignatureStatus.signed)
        .values(
            status=SignatureStatus.signed,
            signed_at=get_datetime_utc(),
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    if result.rowcount != 1:
        session.rollback()
        raise AlreadySigned()
    session.commit()
    session.refresh(signature)

    if signature.signer_type == SignerType.founder:
        founder = _match_founder(session, document.company_id, signature.signer_email)
        if founder and advance_founder_status(founder, FounderStatus.active):
            session.add(founder)
            session.commit()
    elif signature.signer_type == SignerType.investor:
        investor = _match_investor(session, document, signature.signer_email)
        if investor and advance_investor_status(investor, SignatureStatus.signed):
            session.add(investor)
            session.commit()

    reconcile_document_activation(session, document)
    session.refresh(signature)
    return signature
