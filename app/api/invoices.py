"""
Invoice Endpoints.
E-mail delivery for invoices rendered by the frontend.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from app.config import Settings, get_settings
from app.services.invoice_email_service import InvoiceEmailError, InvoiceEmailService

router = APIRouter()
logger = logging.getLogger(__name__)


class SendInvoiceEmailRequest(BaseModel):
    """Body posted by the billing screens."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: Union[str, int] = Field(alias="orderId")
    user_email: str = Field(alias="userEmail")
    customer_name: Optional[str] = Field(None, alias="customerName")
    html_body: Optional[str] = Field(None, alias="htmlBody")
    pdf_attachment: Optional[str] = Field(None, alias="pdfAttachment")


def get_invoice_email_service(
    settings: Settings = Depends(get_settings),
) -> InvoiceEmailService:
    return InvoiceEmailService(settings.resend_api_key, settings.invoice_email_from)


@router.post("/send-invoice-email")
async def send_invoice_email(
    request: SendInvoiceEmailRequest,
    service: InvoiceEmailService = Depends(get_invoice_email_service),
):
    """E-mail an invoice PDF to the customer."""
    if "@" not in request.user_email:
        raise HTTPException(status_code=400, detail=f"Invalid recipient email: {request.user_email}")

    if not request.pdf_attachment:
        raise HTTPException(status_code=400, detail="Missing PDF attachment")

    try:
        message_id = await service.send_invoice(
            order_id=request.order_id,
            user_email=request.user_email,
            pdf_attachment=request.pdf_attachment,
            customer_name=request.customer_name,
            html_body=request.html_body,
        )
    except InvoiceEmailError as e:
        logger.error(f"Invoice e-mail failed for order {request.order_id}: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})

    return {"success": True, "id": message_id}
