"""
Outbound mail collaborator and message templates.

Transport is outside this service: the default ``Mailer`` only logs. Callers
hand messages to ``deliver`` from a background task, after the state change
they announce is committed.
"""
import logging

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, sender: str):
        self.sender = sender

    def send(self, to: str, subject: str, html: str) -> None:
        logger.info("Mail from %s to %s: %s", self.sender, to, subject)

    def deliver(self, to: str, subject: str, html: str) -> None:
        """Fire-and-forget send; failures are logged and never propagated."""
        try:
            self.send(to, subject, html)
        except Exception:
            logger.exception("Failed to send %r to %s", subject, to)


def generate_email_template(otp: str, name: str) -> str:
    return (
        f"<div><h1>Welcome {name}</h1>"
        f"<p>Please verify your email to continue, your verification code is:</p>"
        f"<p><strong>{otp}</strong></p>"
        f"<p>The code expires in 10 minutes.</p></div>"
    )


def plain_email_template(name: str, message: str) -> str:
    return f"<div><h1>Hello {name}</h1><p>{message}</p></div>"


def password_reset_template(url: str) -> str:
    return (
        "<div><h1>Password Reset</h1>"
        "<p>Follow the link below to choose a new password:</p>"
        f'<p><a href="{url}">Reset Password</a></p></div>'
    )
