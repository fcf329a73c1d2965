from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import smtplib
import logging

from core.config import get_settings

settings = get_settings()

logger = logging.getLogger(__name__)


def build_welcome_email(to_email: str) -> MIMEMultipart:
    msg = MIMEMultipart('alternative')
    msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
    msg['To'] = to_email
    msg['Subject'] = f"Welcome to {settings.EMAIL_FROM_NAME}"

    # Plain text version
    text_body = f"""
    Welcome to {settings.EMAIL_FROM_NAME}!

    Your account for {to_email} has been created. You can now log in,
    write posts and follow other writers.
    """

    # HTML version
    html_body = f"""
    <html>
        <body>
            <h2>Welcome to {settings.EMAIL_FROM_NAME}!</h2>
            <p>Your account for <strong>{to_email}</strong> has been created.</p>
            <p>You can now log in, write posts and follow other writers.</p>
        </body>
    </html>
    """

    # Attach both versions
    msg.attach(MIMEText(text_body, 'plain'))
    msg.attach(MIMEText(html_body, 'html'))
    return msg


def send_welcome_email(to_email: str) -> None:
    """Send the registration notice.

    Failures propagate to the caller, registration treats the email as a hard
    dependency.
    """
    if not settings.EMAIL_ENABLED:
        logger.info("Email disabled, skipping welcome email")
        return

    msg = build_welcome_email(to_email)
    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            if settings.SMTP_STARTTLS:
                server.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send welcome email: {str(e)}")
        raise
