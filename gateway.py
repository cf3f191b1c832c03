"""
Payment gateway client (Razorpay orders API) and payment signature checks.
"""
import hashlib
import hmac
import time
from typing import Optional

import requests
import structlog

from errors import GatewayError

logger = structlog.get_logger(component="gateway")


def make_receipt() -> str:
    return f"order_{int(time.time() * 1000)}"


def compute_signature(gateway_order_id: str, payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of "{gateway_order_id}|{payment_id}" keyed with `secret`."""
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(gateway_order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    if not secret or not signature:
        return False
    expected = compute_signature(gateway_order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)


class PaymentGateway:
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_order(self, amount: int, currency: str, receipt: str, notes: Optional[dict] = None) -> str:
        """Create a gateway order for `amount` whole currency units; returns its id.

        The gateway works in minor units, so the amount is sent multiplied by 100.
        """
        payload = {
            "amount": amount * 100,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            response = self.session.post(
                f"{self.api_url}/orders",
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            logger.error("gateway_order_timeout", receipt=receipt, timeout=self.timeout)
            raise GatewayError("Payment gateway timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error("gateway_order_failed", receipt=receipt, error=str(e))
            raise GatewayError("Payment gateway request failed") from e
        except ValueError as e:
            logger.error("gateway_order_bad_response", receipt=receipt)
            raise GatewayError("Payment gateway returned an invalid response") from e

        gateway_order_id = data.get("id") if isinstance(data, dict) else None
        if not gateway_order_id:
            logger.error("gateway_order_missing_id", receipt=receipt)
            raise GatewayError("Payment gateway returned no order id")

        logger.info("gateway_order_created", receipt=receipt, gateway_order_id=gateway_order_id, amount=amount)
        return gateway_order_id

    def verify(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        return verify_signature(gateway_order_id, payment_id, signature, self.key_secret)
