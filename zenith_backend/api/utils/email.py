from flask import current_app
from flask_mail import Message
from zenith_backend.extensions import mail


def send_email(subject, recipients, body, html=None, attachments=None, sender=None):
    """
    Send a UTF-8 e-mail with optional HTML part and attachments.
    Attachments are dicts with filename / content / mimetype.
    """
    if isinstance(recipients, str):
        recipients = [recipients]
    recipients = [r for r in (recipients or []) if r]
    if not recipients:
        current_app.logger.info("[MAIL] no recipients for '%s', skipped", subject)
        return None

    msg = Message(
        subject=subject or "",
        recipients=recipients,
        body=body or "",
        html=html,
        sender=sender,
    )
    msg.charset = "utf-8"

    for att in attachments or []:
        if not isinstance(att, dict):
            continue
        filename = att.get("filename") or "attachment"
        data = att.get("content", att.get("data"))
        mimetype = att.get("mimetype") or att.get("content_type") or "application/octet-stream"
        if data is None:
            continue
        msg.attach(filename=filename, content_type=mimetype, data=data)

    mail.send(msg)
    current_app.logger.info("[MAIL] '%s' sent to %s", subject, ", ".join(recipients))
    return msg
