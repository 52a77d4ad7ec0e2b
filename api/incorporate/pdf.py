# Executed-document PDFs: content pages rendered with reportlab, plus a
# certificate-of-completion page appended with pypdf.

import hashlib
import textwrap
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .models import Document, DocumentSignature

TOP = 750
BOTTOM = 72
LEFT = 72
LINE = 14
WRAP = 95


def _render_content(document: Document) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setTitle(document.title)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(LEFT, TOP, document.title[:80])
    c.setFont("Helvetica", 10)
    y = TOP - 2 * LINE
    for paragraph in (document.content or "").splitlines() or [""]:
        for line in textwrap.wrap(paragraph, WRAP) or [""]:
            if y < BOTTOM:
                c.showPage()
                c.setFont("Helvetica", 10)
                y = TOP
            c.drawString(LEFT, y, line)
            y -= LINE
    c.showPage()
    c.save()
    return buf.getvalue()


def render_certificate(info: dict, signatures: list[DocumentSignature]) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.setFont("Helvetica-Bold", 14)
    c.drawString(LEFT, TOP, "Certificate of Completion")
    c.setFont("Helvetica", 10)
    y = TOP - 30
    lines = [f"{k}: {v}" for k, v in info.items()]
    for sig in signatures:
        lines.append("")
        lines.append(f"Signer: {sig.signer_name or sig.signer_email} <{sig.signer_email}>")
        lines.append(f"  status: {sig.status.value}")
        lines.append(f"  signed_at: {sig.signed_at.isoformat() if sig.signed_at else '-'}")
        lines.append(f"  ip: {sig.ip_address or '-'}")
    for line in lines:
        c.drawString(LEFT, y, line[:WRAP])
        y -= LINE
        if y < BOTTOM:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = TOP
    c.showPage()
    c.save()
    return buf.getvalue()


def render_document_pdf(document: Document, signatures: list[DocumentSignature]) -> bytes:
    content_pdf = _render_content(document)
    writer = PdfWriter()
    for page in PdfReader(BytesIO(content_pdf)).pages:
        writer.add_page(page)
    cert_pdf = render_certificate({
        "document_id": document.id,
        "title": document.title,
        "status": document.status.value,
        "activated_at": document.activated_at.isoformat() if document.activated_at else "-",
        "sha256_content": hashlib.sha256((document.content or "").encode()).hexdigest(),
    }, signatures)
    for page in PdfReader(BytesIO(cert_pdf)).pages:
        writer.add_page(page)
    out = BytesIO()
    writer.write(out)
    return out.getvalue()
