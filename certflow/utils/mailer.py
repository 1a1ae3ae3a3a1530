from flask_mail import Message
from flask import current_app
from certflow.extensions import mail


def send_email(to, subject, body, html=None):
    """Generic email sender that never mails the sender address itself."""

    sender = current_app.config.get("MAIL_DEFAULT_SENDER")
    sender_email = sender[1] if isinstance(sender, tuple) else sender
    recipients = [to] if isinstance(to, str) else list(to)

    # Prevent sending to admin/sender email
    if sender_email in recipients:
        current_app.logger.info(f"Skipped sending email to sender address: {sender_email}")
        return False

    msg = Message(
        subject=subject,
        recipients=recipients,
        sender=sender,
    )
    msg.body = body
    if html:
        msg.html = html

    try:
        mail.send(msg)
    except Exception as e:
        current_app.logger.error(f"Failed to send email: {str(e)}")
        raise

    current_app.logger.info(f"Email sent successfully to {to}")
    return True
