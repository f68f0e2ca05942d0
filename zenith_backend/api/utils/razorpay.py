import base64
import hashlib
import hmac
import json
import urllib.error
import urllib.request

from flask import current_app

from zenith_backend.errors import ExternalServiceError


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str | None = None) -> bool:
    """HMAC-SHA256 over "order_id|payment_id", compared in constant time."""
    secret = secret if secret is not None else current_app.config.get("RAZORPAY_KEY_SECRET")
    if not secret:
        raise ExternalServiceError("Payment gateway is not configured.")
    expected = hmac.new(
        secret.encode("utf-8"),
        f"{order_id}|{payment_id}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, (signature or "").strip())


class RazorpayClient:
    """Minimal Orders API client over urllib."""

    def __init__(self, key_id: str | None = None, key_secret: str | None = None,
                 api_url: str | None = None, timeout: int | None = None):
        cfg = current_app.config
        self.key_id = key_id or cfg.get("RAZORPAY_KEY_ID")
        self.key_secret = key_secret or cfg.get("RAZORPAY_KEY_SECRET")
        self.api_url = (api_url or cfg.get("RAZORPAY_API_URL") or "").rstrip("/")
        self.timeout = timeout or cfg.get("RAZORPAY_TIMEOUT", 10)
        if not self.key_id or not self.key_secret:
            raise ExternalServiceError("Payment gateway is not configured.")

    def _auth_header(self) -> str:
        token = base64.b64encode(f"{self.key_id}:{self.key_secret}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"

    def _post(self, path: str, payload: dict) -> dict:
        req = urllib.request.Request(
            f"{self.api_url}{path}",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={"Content-Type": "application/json", "Authorization": self._auth_header()},
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", "replace")[:300]
            current_app.logger.error("[PAYMENT] gateway HTTP %s: %s", exc.code, detail)
            raise ExternalServiceError("Payment gateway rejected the request.", status=exc.code)
        except (urllib.error.URLError, TimeoutError, ValueError) as exc:
            current_app.logger.error("[PAYMENT] gateway unreachable: %s", exc)
            raise ExternalServiceError("Payment gateway unavailable.")

    def create_order(self, amount_minor: int, receipt: str, notes: dict | None = None,
                     currency: str = "INR") -> dict:
        return self._post("/orders", {
            "amount": int(amount_minor),
            "currency": currency,
            "receipt": receipt[:40],
            "notes": notes or {},
        })
