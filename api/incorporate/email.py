import logging
import os
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from html import escape

from .errors import NotificationError
from .utils import sign_url

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("EMAIL_PORT", "587"))
SMTP_USER = os.getenv("EMAIL_USER")
SMTP_PASSWORD = os.getenv("EMAIL_PASSWORD")
DEFAULT_SENDER = os.getenv("EMAIL_SENDER", SMTP_USER or "onboarding@incorporate.run")
DEFAULT_SENDER_NAME = os.getenv("EMAIL_SENDER_NAME", "incorporate.run")

_CARD_OPEN = """
<html>
  <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; background: #f5f6f8; padding: 24px;">
    <div style="max-width: 560px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 24px; box-shadow: 0 10px 25px rgba(15,23,42,0.08);">
"""
_CARD_CLOSE = """
    </div>
    <p style="text-align: center; font-size: 12px; color: #9ca3af;">Powered by <strong style="color: #2563eb;">incorporate.run</strong></p>
  </body>
</html>
"""


def format_sender_name(requester_name: str | None = None) -> str:
    base_label = (DEFAULT_SENDER_NAME or "incorporate.run").strip() or "incorporate.run"
    if requester_name:
        plain = requester_name.strip()
        if plain:
            return f"{plain} via {base_label}"
    return base_label


def send_email(
    to: str,
    subject: str,
    body: str,
    html_body: str | None = None,
    sender_name: str | None = None,
    reply_to: str | None = None,
):
    display_name = (sender_name or DEFAULT_SENDER_NAME).strip()
    from_value = formataddr((display_name, DEFAULT_SENDER)) if display_name else DEFAULT_SENDER
    if SMTP_USER and SMTP_PASSWORD:
        msg = EmailMessage()
        msg["From"] = from_value
        if reply_to:
            msg["Reply-To"] = reply_to
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body or "")
        if html_body:
            msg.add_alternative(html_body, subtype="html")
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT) as smtp:
            smtp.starttls()
            smtp.login(SMTP_USER, SMTP_PASSWORD)
            smtp.send_message(msg)
    else:
        logger.info(
            "EMAIL (stub) from=%s reply_to=%s to=%s subject=%s\n%s",
            from_value, reply_to or "(not set)", to, subject, body,
        )


class Notifier:
    """Transactional email for invitations and signature requests."""

    available = True

    def __init__(self, transport=None):
        self._send = transport or send_email

    @property
    def configured(self) -> bool:
        return bool(SMTP_USER and SMTP_PASSWORD)

    def _deliver(self, to: str, subject: str, text_body: str, html_body: str, **kwargs):
        try:
            self._send(to, subject, text_body, html_body=html_body, **kwargs)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send '%s' to %s: %s", subject, to, e)
            raise NotificationError(f"Could not send email to {to}") from e

    def send_signature_request(
        self,
        recipient_email: str,
        recipient_name: str | None,
        document_title: str,
        magic_token: str,
        base_url: str,
        requester_name: str | None = None,
    ):
        link = sign_url(base_url, magic_token)
        name = recipient_name or recipient_email
        subject = f"Sign: {document_title}"
        text_body = f"""Hi {name},

You've been asked to sign "{document_title}".

Review and sign: {link}
"""
        link_html = escape(link)
        html_body = f"""{_CARD_OPEN}
      <h2 style="margin-top: 0; font-size: 20px; color: #0f172a;">Document signature request</h2>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">Hi {escape(name)},</p>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">
        You've been asked to sign <strong>{escape(document_title)}</strong>. Click the button below to review and sign the document.
      </p>
      <div style="margin: 24px 0;">
        <a href="{link_html}" style="display: inline-block; background: #2563eb; color: #fff; padding: 12px 24px; border-radius: 999px; text-decoration: none; font-weight: 600;">
          Review &amp; Sign Document
        </a>
      </div>
      <p style="font-size: 12px; color: #64748b;">If the button doesn&apos;t work, copy this link into your browser:<br /><a href="{link_html}">{link_html}</a></p>
{_CARD_CLOSE}"""
        self._deliver(
            recipient_email, subject, text_body, html_body,
            sender_name=format_sender_name(requester_name),
        )

    def send_founder_invitation(
        self,
        recipient_email: str,
        recipient_name: str,
        company_name: str,
        inviter_name: str,
    ):
        subject = f"You've been added as a founder of {company_name}"
        text_body = f"""Hi {recipient_name},

{inviter_name} has added you as a founder of {company_name} on incorporate.run.
You'll receive separate emails with documents to review and sign. Welcome to the team!

Next steps:
- Watch for signature request emails
- Upload your ID for verification
- Review equity allocations and vesting schedules
"""
        html_body = f"""{_CARD_OPEN}
      <h2 style="margin-top: 0; font-size: 20px; color: #0f172a;">Founder invitation</h2>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">Hi {escape(recipient_name)},</p>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">
        <strong>{escape(inviter_name)}</strong> has added you as a founder of <strong>{escape(company_name)}</strong> on incorporate.run.
      </p>
      <p style="font-size: 14px; color: #1e293b; line-height: 1.5;">You'll receive separate emails with documents to review and sign. Welcome to the team!</p>
      <p style="font-size: 13px; color: #475569; background: #f8fafc; padding: 12px 16px; border-radius: 8px;">
        <strong>Next steps:</strong><br />
        &bull; Watch for signature request emails<br />
        &bull; Upload your ID for verification<br />
        &bull; Review equity allocations and vesting schedules
      </p>
{_CARD_CLOSE}"""
        self._deliver(
            recipient_email, subject, text_body, html_body,
            sender_name=format_sender_name(inviter_name),
        )
