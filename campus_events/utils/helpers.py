import logging
import secrets
import string
import uuid
from typing import Optional
from datetime import datetime, timezone
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every timestamp is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def normalize_email_domain(domain: str) -> str:
    domain = domain.strip().lower()
    return domain if domain.startswith("@") else f"@{domain}"


def email_domain_of(email: str) -> str:
    return "@" + email.strip().lower().split("@", 1)[-1]


def generate_token(length: int = 8) -> str:
    """Generate a random alphanumeric token of specified length"""
    characters = string.ascii_uppercase + string.digits
    return ''.join(secrets.choice(characters) for _ in range(length))


def send_verification_email(
    email: str,
    name: str,
    token: str,
    api_key: Optional[str] = None,
    from_email: Optional[str] = None,
) -> bool:
    """Send a verification code using SendGrid; returns False when not sent"""
    if not api_key or not from_email:
        logger.info("Email delivery not configured; verification code %s for %s not emailed",
                    mask_token(token), email)
        return False

    try:
        sg = SendGridAPIClient(api_key=api_key)

        subject = "Verify your campus events account"
        html_content = f"""
        <html>
        <body>
            <h2>Welcome {name}!</h2>
            <p>Use the following verification code the next time you sign in to the campus events app:</p>
            <h1 style="color: #007bff; font-size: 2em; text-align: center; padding: 20px; background: #f8f9fa; border-radius: 5px;">{token}</h1>
            <p>The code can be used once. If you didn't request this, please ignore this email.</p>
        </body>
        </html>
        """

        message = Mail(
            from_email=from_email,
            to_emails=email,
            subject=subject,
            html_content=html_content
        )

        response = sg.send(message)
        sent = response.status_code == 202
        if sent:
            logger.info("Sent verification code %s to %s", mask_token(token), email)
        else:
            logger.warning("SendGrid returned %s for %s", response.status_code, email)
        return sent

    except Exception:
        logger.exception("Error sending verification email to %s", email)
        return False


def mask_token(token: str) -> str:
    """Mask a token for display purposes (show only first and last character)"""
    if len(token) <= 2:
        return token
    return token[0] + "*" * (len(token) - 2) + token[-1]
