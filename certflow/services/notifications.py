from flask import current_app, render_template

from certflow.utils.mailer import send_email

TEMPLATES = {
    "approve": ("Approved", "emails/certification_approved"),
    "reject": ("Rejected", "emails/certification_rejected"),
}


def send_certification_notification(user, level, action):
    """Tell the student about an admin decision. Nothing flows back into the workflow."""
    if action not in TEMPLATES:
        raise ValueError(f"Unknown certification action: {action}")

    outcome, template = TEMPLATES[action]
    context = {
        "full_name": user.full_name,
        "level": level,
        "dashboard_url": current_app.config.get("FRONTEND_URL", "http://localhost:3000"),
    }

    return send_email(
        to=user.email,
        subject=f"Certification Level {level} {outcome}",
        body=render_template(f"{template}.txt", **context),
        html=render_template(f"{template}.html", **context),
    )
