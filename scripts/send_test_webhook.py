"""
Test Script: Razorpay Webhook
Sign a sample payment.captured event and post it to a running instance.

Usage:
    python scripts/send_test_webhook.py pay_123 TV-1
"""

import hashlib
import hmac
import json
import os
import sys

import httpx
from dotenv import load_dotenv

load_dotenv()

# Configuration
BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
WEBHOOK_SECRET = os.getenv("RAZORPAY_WEBHOOK_SECRET", "")


def build_event(payment_id: str, franchise_id: str) -> dict:
    """Minimal payment.captured event as Razorpay sends it."""
    return {
        "event": "payment.captured",
        "payload": {
            "payment": {
                "entity": {
                    "id": payment_id,
                    "email": "test@example.com",
                    "contact": "+919999999999",
                    "notes": {
                        "franchise_id": franchise_id,
                        "customer_name": "Webhook Test",
                        "items": "[]",
                    },
                }
            }
        },
    }


def send(payment_id: str, franchise_id: str) -> None:
    body = json.dumps(build_event(payment_id, franchise_id))
    signature = hmac.new(WEBHOOK_SECRET.encode(), body.encode(), hashlib.sha256).hexdigest()

    print(f"\n📍 Posting payment.captured for {payment_id}...")
    response = httpx.post(
        f"{BASE_URL}/webhooks/razorpay",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Razorpay-Signature": signature,
        },
        timeout=60.0,
    )
    print(f"   Status: {response.status_code}")
    print(f"   Response: {response.text}")


if __name__ == "__main__":
    if not WEBHOOK_SECRET:
        print("❌ RAZORPAY_WEBHOOK_SECRET not set")
        sys.exit(1)

    pay_id = sys.argv[1] if len(sys.argv) > 1 else "pay_test_123"
    franchise = sys.argv[2] if len(sys.argv) > 2 else "TV-1"
    send(pay_id, franchise)
