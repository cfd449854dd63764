"""QR codes pointing at the public verification page."""
from io import BytesIO
from urllib.parse import quote

import qrcode

from ..config import Settings


def verification_url(settings: Settings, employee_code: str) -> str:
    """Public URL a scanned badge opens."""
    base = settings.public_base_url.rstrip("/")
    return f"{base}/employees/verify/{quote(employee_code, safe='')}"


def render_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    """Render ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
