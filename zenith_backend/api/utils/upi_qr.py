import io
import urllib.parse
from decimal import Decimal

import qrcode
from flask import current_app

from zenith_backend.errors import ExternalServiceError


def build_upi_uri(amount: Decimal, reference: str, note: str | None = None) -> str:
    """
    upi://pay?pa=<vpa>&pn=<payee>&am=<amount>&cu=INR&tr=<ref>&tn=<note>
    """
    vpa = current_app.config.get("UPI_VPA")
    if not vpa:
        raise ExternalServiceError("UPI_VPA is not configured.")
    params = {
        "pa": vpa,
        "pn": current_app.config.get("UPI_PAYEE_NAME") or "",
        "am": f"{amount:.2f}",
        "cu": "INR",
        "tr": reference,
    }
    if note:
        # keep printable ASCII only
        params["tn"] = "".join(ch for ch in note if 32 <= ord(ch) <= 126)[:60]
    return "upi://pay?" + urllib.parse.urlencode(params, quote_via=urllib.parse.quote)


def render_qr_png(payload: str, box_size: int = 8, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
