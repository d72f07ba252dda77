import asyncio
import logging

import resend

from marketplace.config import Settings

logger = logging.getLogger(__name__)


class ResendMailer:
    def __init__(self, api_key: str, sender: str):
        self.api_key = (api_key or "").strip()
        self.sender = sender

    def _send(self, payload: dict):
        resend.api_key = self.api_key
        return resend.Emails.send(payload)

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> bool:
        if not self.api_key:
            logger.warning("Resend API key is not configured, mail to %s not sent", to)
            return False

        payload = {"from": self.sender, "to": [to], "subject": subject, "text": text}
        if html:
            payload["html"] = html
        try:
            response = await asyncio.to_thread(self._send, payload)
        except Exception:
            logger.exception("Sending mail to %s failed", to)
            return False

        if not isinstance(response, dict) or not response.get("id"):
            logger.error("Unexpected Resend response for %s: %s", to, response)
            return False
        return True


def otp_email(code: str, minutes: int) -> tuple[str, str]:
    text = f"Your OTP is {code}. It expires in {minutes} minutes."
    html = (
        "<div style=\"font-family:Arial,Helvetica,sans-serif;text-align:center\">"
        "<h2>Password reset</h2>"
        f"<p>Use this code to reset your password. It expires in {minutes} minutes.</p>"
        f"<p style=\"font-size:32px;letter-spacing:0.3em;font-weight:700\">{code}</p>"
        "</div>"
    )
    return text, html


mailer = ResendMailer(Settings.RESEND_API_KEY, Settings.MAIL_FROM)
