"""
Email Notification Service

Sends account verification and password reset links over SMTP.
"""
import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    SMTP mail sender configured from settings.

    When SMTP_USER / SMTP_PASSWORD are missing, sends are skipped with a
    warning so registration and reset flows keep working locally.
    """

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL or self.smtp_user or "no-reply@agritech.local"
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")

        self.is_configured = bool(self.smtp_user and self.smtp_password)
        if not self.is_configured:
            logger.warning(
                "Email service not configured. Set SMTP_USER and SMTP_PASSWORD "
                "to enable verification and password reset emails."
            )

    def _send(self, to_email: str, subject: str, text_content: str, html_content: str) -> bool:
        if not self.is_configured:
            logger.warning(f"Email not configured, skipping '{subject}' to {to_email}")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.from_email
            msg["To"] = to_email
            msg.attach(MIMEText(text_content, "plain"))
            msg.attach(MIMEText(html_content, "html"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email '{subject}' sent to {to_email}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed: {e}")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {type(e).__name__}: {e}")
            return False

    def send_verification_email(self, to_email: str, first_name: str, token: str) -> bool:
        link = f"{self.frontend_url}/verify-email/{token}"
        text_content = f"""
Hello {first_name},

Please confirm your email address for AgriTech by opening the link below:

{link}

If you did not create an account you can ignore this message.
"""
        html_content = f"""
<html>
<body style="font-family: Arial, sans-serif; color: #333;">
    <h2>Welcome to AgriTech, {first_name}</h2>
    <p>Please confirm your email address:</p>
    <p><a href="{link}">Verify email</a></p>
    <p style="font-size: 12px; color: #6c757d;">If you did not create an account you can ignore this message.</p>
</body>
</html>
"""
        return self._send(to_email, "Verify your AgriTech account", text_content, html_content)

    def send_password_reset_email(self, to_email: str, first_name: str, token: str) -> bool:
        link = f"{self.frontend_url}/reset-password/{token}"
        minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
        text_content = f"""
Hello {first_name},

A password reset was requested for your AgriTech account. The link below is
valid for {minutes} minutes:

{link}

If you did not request this you can ignore this message.
"""
        html_content = f"""
<html>
<body style="font-family: Arial, sans-serif; color: #333;">
    <h2>Password reset</h2>
    <p>Hello {first_name}, use the link below to choose a new password.
    It is valid for {minutes} minutes.</p>
    <p><a href="{link}">Reset password</a></p>
    <p style="font-size: 12px; color: #6c757d;">If you did not request this you can ignore this message.</p>
</body>
</html>
"""
        return self._send(to_email, "Reset your AgriTech password", text_content, html_content)


email_service = EmailService()
