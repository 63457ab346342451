"""QR code generation for settlement payments.

Builds PromptPay payment links for a settlement transaction and renders
them as PNG QR codes using the qrcode library.
"""

import io
import logging

import qrcode
from qrcode.image.pil import PilImage

from pokerledger.config import settings

logger = logging.getLogger("pokerledger.services.qr")


def payment_url(promptpay_id: str, amount: float, base_url: str = "") -> str:
    """PromptPay link paying ``amount`` (currency, two decimals) to ``promptpay_id``."""
    base = (base_url or settings.PROMPTPAY_BASE_URL).rstrip("/")
    return f"{base}/{promptpay_id}/{amount:.2f}"


def generate_payment_qr(promptpay_id: str, amount: float, base_url: str = "") -> bytes:
    """Generate a QR code PNG for a PromptPay payment.

    Returns:
        PNG image data as bytes.
    """
    url = payment_url(promptpay_id, amount, base_url)

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(url)
    qr.make(fit=True)

    img: PilImage = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)

    logger.info("Generated payment QR -> %s", url)
    return buffer.getvalue()
