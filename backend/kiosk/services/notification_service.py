# Overview: Best-effort outbound email (OTP codes, payment reminders).

"""
Notifications are fire-and-forget. dispatch() runs the sender on a daemon
thread inside a fresh app context; any delivery error is logged and never
reaches the request that triggered it. With NOTIFICATIONS_ASYNC disabled the
sender runs inline, with the same error isolation.

Mail is disabled when MAIL_SERVER is not configured; messages are logged
instead of sent.
"""

from __future__ import annotations

import smtplib
import threading
from decimal import Decimal
from email.message import EmailMessage

from flask import current_app

from ..validation import money_str


def dispatch(func, *args, **kwargs) -> None:
    app = current_app._get_current_object()

    def _run():
        with app.app_context():
            try:
                func(*args, **kwargs)
            except Exception:
                app.logger.exception("Notification %s failed", getattr(func, "__name__", func))

    if app.config.get("NOTIFICATIONS_ASYNC", True):
        threading.Thread(target=_run, daemon=True, name="kiosk-notify").start()
    else:
        _run()


def send_email(to: str, subject: str, text: str) -> bool:
    """Send a plain-text email. Returns False when mail is disabled."""
    config = current_app.config
    server = config.get("MAIL_SERVER")
    if not server:
        current_app.logger.info("Mail disabled; not sending %r to %s", subject, to)
        return False

    message = EmailMessage()
    message["From"] = config.get("MAIL_FROM")
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)

    with smtplib.SMTP(server, config.get("MAIL_PORT", 25), timeout=10) as smtp:
        if config.get("MAIL_USE_TLS"):
            smtp.starttls()
        if config.get("MAIL_USERNAME"):
            smtp.login(config["MAIL_USERNAME"], config.get("MAIL_PASSWORD") or "")
        smtp.send_message(message)

    current_app.logger.info("Sent %r to %s", subject, to)
    return True


def send_otp_email(email: str, otp: str) -> bool:
    minutes = current_app.config.get("OTP_EXPIRY_MINUTES", 10)
    return send_email(
        email,
        "Your login code",
        f"Your one-time login code is {otp}.\n"
        f"It expires in {minutes} minutes. If you did not request it, ignore this email.",
    )


def send_payment_reminder(
    email: str,
    total: Decimal,
    balance: Decimal,
    lines: list[tuple[str, int, Decimal]],
) -> bool:
    """lines: (product name, quantity, unit price) for the purchase just made."""
    purchases = "\n".join(
        f"  - {name} x{quantity} @ {money_str(price)}" for name, quantity, price in lines
    )
    return send_email(
        email,
        "Payment Reminder",
        f"Thank you for your purchase of {money_str(total)}.\n\n"
        f"Recent purchases:\n{purchases}\n\n"
        f"You have an outstanding balance of {money_str(balance)}. "
        "Please settle your balance at your earliest convenience.",
    )
