"""Outgoing mail through the Resend HTTP API."""
import logging

import requests

RESEND_URL = "https://api.resend.com/emails"


class MailerConfigError(RuntimeError):
    """Raised when the mail credentials are missing."""


class ResendMailer:
    def __init__(self, api_key: str, sender: str, timeout: int = 10):
        if not api_key:
            raise MailerConfigError("Missing RESEND_API_KEY in .env")
        if not sender:
            raise MailerConfigError("Missing FROM_EMAIL in .env")
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "ResendMailer":
        return cls(getattr(config, "RESEND_API_KEY", ""), getattr(config, "FROM_EMAIL", ""))

    def send(self, to: str, subject: str, text: str) -> None:
        response = requests.post(
            RESEND_URL,
            json={"from": self.sender, "to": [to], "subject": subject, "text": text},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        logging.info("Sent mail %r to %s", subject, to)
