"""Services package."""

from app.services.razorpay_service import RazorpayService, RefundResult, verify_razorpay_signature
from app.services.order_service import OrderService, OrderPlacementError, ReconciliationOutcome
from app.services.invoice_email_service import InvoiceEmailService, InvoiceEmailError
from app.services.user_registration_service import UserRegistrationService, UserRegistrationError

__all__ = [
    "RazorpayService",
    "RefundResult",
    "verify_razorpay_signature",
    "OrderService",
    "OrderPlacementError",
    "ReconciliationOutcome",
    "InvoiceEmailService",
    "InvoiceEmailError",
    "UserRegistrationService",
    "UserRegistrationError",
]
