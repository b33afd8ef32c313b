import logging
import os
import smtplib
from email.message import EmailMessage

logger = logging.getLogger(__name__)


def send_contact_email(name: str, email: str, message: str) -> bool:
    """Forward a contact submission to the site owner.

    Sends via SMTP when SMTP_HOST, ALERT_FROM and CONTACT_EMAIL_TO are set;
    otherwise only logs what would have been sent. Returns True if a message
    was handed to the SMTP server.
    """
    site_name = os.environ.get("SITE_NAME", "Beat Alchemy")
    to_addr = os.environ.get("CONTACT_EMAIL_TO", "")
    subject = f"[{site_name}] New Contact Form Submission from {name}"

    host = os.environ.get("SMTP_HOST")
    from_addr = os.environ.get("ALERT_FROM", "")
    if not (host and from_addr and to_addr):
        logger.info(
            "Would send email:\n  To: %s\n  From: %s\n  Subject: %s\n  Body:\n%s",
            to_addr or "(CONTACT_EMAIL_TO not set)",
            email,
            subject,
            message,
        )
        return False

    port = int(os.environ.get("SMTP_PORT", "587"))
    user = os.environ.get("SMTP_USER", "")
    password = os.environ.get("SMTP_PASS", "")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg["Reply-To"] = email
    msg.set_content(f"From: {name} <{email}>\n\n{message}")

    try:
        with smtplib.SMTP(host, port) as smtp:
            smtp.starttls()
            if user and password:
                smtp.login(user, password)
            smtp.send_message(msg)
        logger.info(f"Contact email sent: {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send contact email: {e}")
        return False
