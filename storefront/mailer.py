# storefront/mailer.py
import logging

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class Mailer:
    """
    Sends transactional mail through an HTTP email API (Resend-compatible
    ``POST /emails``). Without an API key the message is only logged, which
    is what local development relies on.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self.settings.email_api_key:
            logger.info("[MAIL] no EMAIL_API_KEY set, skipping send to=%s subject=%r", to, subject)
            return
        payload = {
            "from": self.settings.email_from,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.settings.email_api_key}"}
        async with httpx.AsyncClient(timeout=15) as client:
            r = await client.post(self.settings.email_api_url, json=payload, headers=headers)
        logger.info("[MAIL] sent to=%s subject=%r status=%s", to, subject, r.status_code)
        r.raise_for_status()

    async def send_otp_email(self, to: str, otp: str) -> None:
        minutes = self.settings.otp_expire_minutes
        await self.send(
            to,
            "Your OTP Code",
            f"<h2>Your OTP: {otp}</h2><p>Valid for {minutes} minutes</p>",
        )

    async def send_reset_password_email(self, to: str, link: str) -> None:
        minutes = self.settings.reset_token_expire_minutes
        await self.send(
            to,
            "Reset your password",
            f"""
            <h3>Password Reset</h3>
            <p>Click the link below to reset your password:</p>
            <a href="{link}">{link}</a>
            <p>This link expires in {minutes} minutes.</p>
            """,
        )
