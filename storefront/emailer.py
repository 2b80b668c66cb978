"""Order email dispatch through the EmailJS REST API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import httpx

from storefront.config import EMAIL_TIMEOUT_SECONDS, EMAILJS_API_URL
from storefront.errors import EmailNotConfigured, EmailSendError, StoreError
from storefront.orders import OrderEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailConfig:
    service_id: str
    template_id: str
    public_key: str
    recipient_email: str
    private_key: str = ""

    @classmethod
    def from_env(cls) -> EmailConfig:
        return cls(
            service_id=os.environ.get("EMAILJS_SERVICE_ID", "").strip(),
            template_id=os.environ.get("EMAILJS_TEMPLATE_ID", "").strip(),
            public_key=os.environ.get("EMAILJS_PUBLIC_KEY", "").strip(),
            recipient_email=os.environ.get("ORDER_RECIPIENT_EMAIL", "").strip(),
            private_key=os.environ.get("EMAILJS_PRIVATE_KEY", "").strip(),
        )

    @property
    def is_complete(self) -> bool:
        return all((self.service_id, self.template_id, self.public_key, self.recipient_email))


class EmailJsSender:
    """Send a rendered HTML order to the caterer's inbox."""

    def __init__(
        self,
        config: EmailConfig,
        transport: httpx.BaseTransport | None = None,
        api_url: str = EMAILJS_API_URL,
    ) -> None:
        self.config = config
        self.transport = transport
        self.api_url = api_url

    @property
    def recipient(self) -> str:
        return self.config.recipient_email

    def send(self, html: str, customer_name: str, customer_email: str) -> None:
        if not self.config.is_complete:
            raise EmailNotConfigured(
                "Email is not configured. Set EMAILJS_SERVICE_ID, EMAILJS_TEMPLATE_ID, "
                "EMAILJS_PUBLIC_KEY and ORDER_RECIPIENT_EMAIL."
            )

        payload: dict = {
            "service_id": self.config.service_id,
            "template_id": self.config.template_id,
            "user_id": self.config.public_key,
            "template_params": {
                "customer_name": customer_name or "Customer",
                "customer_email": customer_email or "noreply@example.com",
                "to_email": self.config.recipient_email,
                "email_html": html,
            },
        }
        if self.config.private_key:
            payload["accessToken"] = self.config.private_key

        with httpx.Client(timeout=EMAIL_TIMEOUT_SECONDS, transport=self.transport) as client:
            try:
                resp = client.post(self.api_url, json=payload)
            except httpx.HTTPError as exc:
                logger.exception("order email request failed: %s", exc)
                raise EmailSendError("Failed to send email. Please try again.") from exc

        if resp.status_code >= 400:
            logger.error("order email API error %s: %s", resp.status_code, resp.text)
            raise EmailSendError(resp.text or "Failed to send email. Please try again.", status_code=resp.status_code)

        logger.info("order email sent to %s for %s", self.config.recipient_email, customer_email or "-")


@dataclass(frozen=True)
class SendResult:
    order_id: str | None
    save_error: str | None = None


def send_order(engine: OrderEngine, sender: EmailJsSender, html: str) -> SendResult:
    """
    Email the order, then record it in the history.

    Send failures propagate and nothing is saved, so the caller can retry the
    same send. A history failure after a successful send is logged and
    reported instead of raised, since the email already went out.
    """
    customer = engine.customer_details
    sender.send(html, customer.name, customer.email)
    try:
        order_id = engine.save_snapshot(email_sent_to=sender.recipient)
    except StoreError as exc:
        logger.error("order sent but not saved to history: %s", exc)
        return SendResult(order_id=None, save_error=str(exc))
    return SendResult(order_id=order_id)
