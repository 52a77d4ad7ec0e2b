"""Retry notifications whose delivery never completed.

Signature rows are persisted at ``pending`` before their email goes out and only
move to ``sent`` once delivery succeeds; founders keep ``invitation_sent_at``
empty until their invitation is delivered. This pass finds both and retries.
"""
import logging

from sqlmodel import Session, select

from .errors import NotificationError
from .lifecycle import deliver_signature_request
from .models import Company, Document, DocumentSignature, DocumentStatus, Founder, SignatureStatus, User
from .onboarding import deliver_invitation
from .services import Services

logger = logging.getLogger(__name__)


def reconcile_notifications(session: Session, services: Services, base_url: str, company_id=None) -> dict:
    summary = {"signatures_sent": 0, "signatures_failed": 0, "invitations_sent": 0, "invitations_failed": 0}

    stmt = (
        select(DocumentSignature, Document)
        .where(
            DocumentSignature.document_id == Document.id,
            DocumentSignature.status == SignatureStatus.pending,
            Document.status != DocumentStatus.active,
        )
    )
    if company_id is not None:
        stmt = stmt.where(Document.company_id == company_id)
    for signature, document in session.exec(stmt).all():
        if deliver_signature_request(session, services, signature, document, base_url):
            summary["signatures_sent"] += 1
        else:
            summary["signatures_failed"] += 1

    founder_stmt = (
        select(Founder, Company, User)
        .where(
            Founder.company_id == Company.id,
            Company.user_id == User.id,
            Founder.invitation_sent_at.is_(None),
        )
    )
    if company_id is not None:
        founder_stmt = founder_stmt.where(Founder.company_id == company_id)
    for founder, company, owner in session.exec(founder_stmt).all():
        try:
            deliver_invitation(session, services, founder, company, owner.display_name)
            summary["invitations_sent"] += 1
        except NotificationError:
            summary["invitations_failed"] += 1

    logger.info("Notification reconciliation finished: %s", summary)
    return summary
