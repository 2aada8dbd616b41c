import logging
import os
import smtplib
from email.message import EmailMessage

import httpx

from worker.celery_app import celery_app

logger = logging.getLogger("famifirst.worker")


def _api_base() -> str:
    return os.environ.get("FAMIFIRST_API_BASE_URL", "http://api:8000/v1").rstrip("/")


@celery_app.task
def generate_recurring_task_instances():
    token = os.environ.get("INTERNAL_ADMIN_TOKEN", "")
    if not token:
        return {"job": "recurring_task_generation", "status": "skipped", "reason": "missing INTERNAL_ADMIN_TOKEN"}

    url = f"{_api_base()}/admin/recurrence/run"
    try:
        resp = httpx.post(url, headers={"X-Internal-Admin-Token": token}, timeout=300.0)
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("Recurring task generation request failed: %s", exc)
        return {"job": "recurring_task_generation", "status": "error", "error": str(exc)}
    return {"job": "recurring_task_generation", "status": "ok", "result": resp.json()}


def render_invitation_email(family_name: str, inviter_name: str, role: str, accept_link: str) -> tuple[str, str]:
    subject = f"{inviter_name} invited you to join {family_name}"
    body = (
        f"Hello,\n\n"
        f"{inviter_name} has invited you to join the family \"{family_name}\" as {role}.\n\n"
        f"Accept the invitation here:\n{accept_link}\n\n"
        f"The link expires in 7 days. If you were not expecting this invitation, ignore this email.\n"
    )
    return subject, body


@celery_app.task
def send_invitation_email(to_email, family_name, inviter_name, role, token, accept_link):
    subject, body = render_invitation_email(family_name, inviter_name, role, accept_link)

    smtp_host = os.environ.get("SMTP_HOST", "")
    if not smtp_host:
        # Development mode: no mail server configured.
        logger.info("Invitation email for %s (%s...): %s\n%s", to_email, token[:8], subject, body)
        return {"job": "invitation_email", "status": "logged", "to": to_email}

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = os.environ.get("SMTP_FROM", "no-reply@famifirst.local")
    message["To"] = to_email
    message.set_content(body)

    timeout = float(os.environ.get("SMTP_TIMEOUT_SECONDS", "10"))
    try:
        with smtplib.SMTP(smtp_host, int(os.environ.get("SMTP_PORT", "587")), timeout=timeout) as smtp:
            if os.environ.get("SMTP_STARTTLS", "true").lower() == "true":
                smtp.starttls()
            username = os.environ.get("SMTP_USERNAME", "")
            if username:
                smtp.login(username, os.environ.get("SMTP_PASSWORD", ""))
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Invitation email to %s failed: %s", to_email, exc)
        return {"job": "invitation_email", "status": "error", "error": str(exc)}
    return {"job": "invitation_email", "status": "sent", "to": to_email}
