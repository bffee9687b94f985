"""
QR codec: verification URL <-> printable PNG, plus zip archives of codes.
"""

import io
import time
import zipfile
from typing import Iterable, List, Optional, Sequence
from urllib.parse import parse_qs, urlencode, urlparse

import cv2
import numpy as np
import qrcode
import structlog
from PIL import Image, ImageDraw, ImageFont
from starlette.concurrency import run_in_threadpool

from ..core.exceptions import InvalidInputError, NoProductsError
from ..db.repositories.product_repository import ProductRepository
from ..utils.identifiers import format_identifier, is_valid_identifier

logger = structlog.get_logger(module=__name__)

QR_SIZE = 500
PADDING = 40
CAPTION_HEIGHT = 120
CAPTION_GAP = 20
FONT_SIZE = 28
FONT_CANDIDATES = ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf")
IDENTIFIER_PARAM = "pid"


def _load_font(size: int) -> ImageFont.ImageFont:
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class QRCodeService:
    """Stateless QR encoder/decoder for product identifiers."""

    def __init__(self, public_base_url: str, qr_size: int = QR_SIZE, padding: int = PADDING):
        self.public_base_url = public_base_url.rstrip("/")
        self.qr_size = qr_size
        self.padding = padding
        self.font = _load_font(FONT_SIZE)

    def build_verification_url(self, identifier: str) -> str:
        """URL a phone camera opens when the printed code is scanned."""
        return f"{self.public_base_url}/verify?{urlencode({IDENTIFIER_PARAM: identifier})}"

    def encode(self, identifier: str) -> bytes:
        """
        Render the QR code for an identifier as PNG bytes.

        The code carries the verification URL at error correction level H
        and the identifier is printed underneath in groups of four digits.

        Raises:
            InvalidInputError: Malformed identifier
        """
        if not is_valid_identifier(identifier):
            raise InvalidInputError("Invalid product ID format")

        qr = qrcode.QRCode(
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=2
        )
        qr.add_data(self.build_verification_url(identifier))
        qr.make(fit=True)
        code = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")
        code = code.resize((self.qr_size, self.qr_size), Image.Resampling.NEAREST)

        width = self.qr_size + self.padding * 2
        height = self.qr_size + CAPTION_HEIGHT
        canvas = Image.new("RGB", (width, height), "white")
        canvas.paste(code, (self.padding, self.padding))

        caption = f"Product ID: {format_identifier(identifier)}"
        draw = ImageDraw.Draw(canvas)
        left, top, right, bottom = draw.textbbox((0, 0), caption, font=self.font)
        text_x = (width - (right - left)) / 2
        text_y = self.padding + self.qr_size + CAPTION_GAP
        draw.text((text_x, text_y), caption, fill="black", font=self.font)

        buffer = io.BytesIO()
        canvas.save(buffer, format="PNG")
        return buffer.getvalue()

    def decode(self, image_bytes: bytes) -> str:
        """
        Read the identifier back out of a QR image.

        Raises:
            InvalidInputError: No readable QR code or no identifier in its URL
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                rgb = np.array(img.convert("RGB"))
        except (OSError, ValueError) as e:
            raise InvalidInputError("Image could not be read") from e

        detector = cv2.QRCodeDetector()
        payload = ""
        for candidate in (cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR), cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)):
            payload, _, _ = detector.detectAndDecode(candidate)
            if payload:
                break

        if not payload:
            raise InvalidInputError("No QR code found in image")

        values = parse_qs(urlparse(payload).query).get(IDENTIFIER_PARAM)
        if not values:
            raise InvalidInputError("QR code does not carry a product ID")
        return values[0]

    def build_archive(self, identifiers: Sequence[str]) -> bytes:
        """
        Zip one ``QR_<identifier>.png`` per identifier.

        Raises:
            NoProductsError: Empty identifier set
        """
        if not identifiers:
            raise NoProductsError("No products found")

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            for identifier in identifiers:
                archive.writestr(f"QR_{identifier}.png", self.encode(identifier))
        return buffer.getvalue()


class QRArchiveService:
    """Resolves product selections through the store and archives their codes."""

    def __init__(self, product_repository: ProductRepository, qr_service: QRCodeService):
        self.product_repository = product_repository
        self.qr_service = qr_service

    async def resolve_identifiers(self, identifiers: Optional[Iterable[str]] = None) -> List[str]:
        """Existing identifiers among the selection, or every product when none given."""
        requested = [value for value in (identifiers or []) if value]
        if requested:
            products = await self.product_repository.get_by_identifiers(requested)
            return [product.identifier for product in products]
        return await self.product_repository.list_all_identifiers()

    async def build_archive(self, identifiers: Optional[Iterable[str]] = None) -> bytes:
        """
        Build the zip for a selection.

        Raises:
            NoProductsError: Selection resolved to no products
        """
        resolved = await self.resolve_identifiers(identifiers)
        if not resolved:
            raise NoProductsError("No products found")

        started = time.monotonic()
        archive = await run_in_threadpool(self.qr_service.build_archive, resolved)

        logger.info(
            "QR archive built",
            product_count=len(resolved),
            archive_bytes=len(archive),
            duration_ms=round((time.monotonic() - started) * 1000, 1)
        )
        return archive
