"""
Invoice Email Service - sends invoice PDFs via the Resend API.
"""

import logging
from typing import Optional, Union

import httpx

logger = logging.getLogger(__name__)

# Resend API endpoint
RESEND_API_URL = "https://api.resend.com/emails"


class InvoiceEmailError(Exception):
    """Invoice e-mail could not be handed to Resend."""


class InvoiceEmailService:
    """Service for e-mailing invoices generated by the frontend."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self._transport = transport

    async def send_invoice(
        self,
        order_id: Union[str, int],
        user_email: str,
        pdf_attachment: str,
        customer_name: Optional[str] = None,
        html_body: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send the invoice e-mail.

        Args:
            order_id: Order shown in the subject and attachment name
            user_email: Recipient address
            pdf_attachment: Base64-encoded PDF
            customer_name: Used in the fallback greeting
            html_body: Pre-rendered HTML from the frontend

        Returns the Resend message ID.
        """
        if not self.api_key:
            raise InvoiceEmailError("RESEND_API_KEY not configured")

        payload = {
            "from": self.sender,
            "to": user_email,
            "subject": f"Invoice for Order #{order_id}",
            "html": html_body or (
                f"<h3>Hello {customer_name or 'Customer'},</h3>"
                "<p>Your order was successful. Please find the invoice attached.</p>"
            ),
            "attachments": [
                {
                    "content": pdf_attachment,
                    "filename": f"Invoice_{order_id}.pdf",
                }
            ],
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.info(f"Sending invoice for order {order_id} to {user_email}")

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            logger.error("Resend request timeout")
            raise InvoiceEmailError("Resend request timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Resend request error: {e}", exc_info=True)
            raise InvoiceEmailError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            logger.error(f"Resend HTTP error: {response.status_code} {response.text}")
            raise InvoiceEmailError(data.get("message") or "Resend failed to send")

        message_id = data.get("id")
        logger.info(f"Invoice e-mail sent: {message_id}")
        return message_id
