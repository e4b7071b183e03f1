import logging
import os
from datetime import datetime
from typing import Dict, Any, Optional

import emails
from emails.template import JinjaTemplate

from lms_backend.core.config import settings

logger = logging.getLogger(__name__)

def is_email_configured() -> bool:
    return bool(settings.EMAIL_HOST and settings.EMAIL_FROM_ADDRESS)

def _smtp_options() -> Dict[str, Any]:
    options = {
        "host": settings.EMAIL_HOST,
        "port": settings.EMAIL_PORT,
        "tls": settings.EMAIL_USE_TLS,
        "ssl": settings.EMAIL_USE_SSL,
        "user": settings.EMAIL_USERNAME,
        "password": settings.EMAIL_PASSWORD,
    }
    options = {k: v for k, v in options.items() if v is not None}
    if not options.get("user"):
        options.pop("user", None)
        options.pop("password", None)
    return options

def send_email(to_email: Optional[str], subject: str, html_content: str) -> bool:
    """
    Sends one HTML e-mail over SMTP.
    Without EMAIL_HOST/EMAIL_FROM_ADDRESS the message is logged and skipped.
    """
    if not to_email:
        logger.warning(f"Email '{subject}' skipped: recipient has no address.")
        return False

    if not is_email_configured():
        logger.info(f"Email SKIPPED (SMTP not configured) [To: {to_email}, Subject: {subject}]")
        return False

    message = emails.Message(
        subject=subject,
        html=html_content,
        mail_from=(settings.EMAIL_FROM_NAME, settings.EMAIL_FROM_ADDRESS),
    )

    logger.info(f"Sending email to {to_email} via {settings.EMAIL_HOST}:{settings.EMAIL_PORT}")
    try:
        response = message.send(to=to_email, smtp=_smtp_options())
    except Exception as e:
        logger.error(f"Exception during email sending to {to_email}: {e}", exc_info=True)
        return False

    if response and response.status_code in (250, 252):
        logger.info(f"Email sent to {to_email}. Subject: '{subject}'")
        return True
    logger.error(
        f"Failed to send email to {to_email}. "
        f"SMTP response: {response.status_code if response else 'none'}, error: {response.error if response else 'n/a'}"
    )
    return False

def render_email_template(template_name: str, context: Dict[str, Any]) -> str:
    """
    Renders `template_name` from EMAILS_TEMPLATES_DIR with Jinja.
    Raises FileNotFoundError when the template is missing.
    """
    template_path = os.path.join(settings.EMAILS_TEMPLATES_DIR, template_name)
    with open(template_path, "r", encoding="utf-8") as f:
        template_str = f.read()
    return JinjaTemplate(template_str).render(**context)

def send_templated_email(to_email: Optional[str], subject: str, html_template_name: str, context: Dict[str, Any]) -> bool:
    context = dict(context)
    context.setdefault("APP_NAME", settings.PROJECT_NAME)
    context.setdefault("APP_FRONTEND_URL", settings.APP_FRONTEND_URL)
    context.setdefault("current_year", datetime.now().year)

    try:
        html_content = render_email_template(html_template_name, context)
    except FileNotFoundError:
        logger.error(f"Email template not found: {html_template_name}")
        return False
    except Exception as e:
        logger.error(f"Error rendering email template '{html_template_name}': {e}", exc_info=True)
        return False

    return send_email(to_email=to_email, subject=subject, html_content=html_content)
