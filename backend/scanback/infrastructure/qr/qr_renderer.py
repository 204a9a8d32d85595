"""PNG rendering of the QR code printed on a tag."""

import logging
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M

logger = logging.getLogger(__name__)


class QrImageRenderer:
    """Encodes a tag's public scan URL as a black-on-white PNG."""

    def __init__(self, *, box_size: int = 10, border: int = 1):
        if box_size < 1 or border < 0:
            raise ValueError("box_size must be positive and border non-negative")
        self._box_size = box_size
        self._border = border

    def render_png(self, data: str) -> bytes:
        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_M,
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white")

        buffer = BytesIO()
        image.save(buffer, format="PNG")
        logger.debug("Rendered QR version %d for %s", qr.version, data)
        return buffer.getvalue()
