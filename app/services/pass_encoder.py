# app/services/pass_encoder.py
"""
Turns a stored pass into something a visitor can carry:
  - the verification URL  <origin><base path>/verify-visitor/<pass_token>
  - a QR code of that URL (PNG)
  - a shareable pass card: title, QR, host address, visit summary, footer

Origin is configuration, not detection: PUBLIC_ORIGIN normally, LAN_ORIGIN
when USE_LAN_ORIGIN is on and the public origin is a loopback address
(so a phone on the same Wi-Fi can open links generated on a dev laptop).
"""

import io
import math
import re
from typing import Optional
from urllib.parse import urlsplit

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from PIL import Image, ImageDraw, ImageFont

from app.config import settings
from app.services.verification_service import format_day
from app.utils.token_parser import VERIFY_SEGMENT
from app.utils.logger import get_logger

logger = get_logger(__name__)

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}

# ── Pass card layout (px) ────────────────────────────────────────────────────
CARD_WIDTH = 600
CARD_PADDING = 40
QR_DISPLAY_SIZE = 400
TITLE_FONT_SIZE, TITLE_LINE_HEIGHT = 36, 40
ADDRESS_FONT_SIZE, ADDRESS_LINE_HEIGHT = 28, 32
DETAILS_FONT_SIZE, DETAILS_LINE_HEIGHT = 22, 26
FOOTER_FONT_SIZE, FOOTER_LINE_HEIGHT = 18, 22

BG_COLOR = "#ffffff"
TITLE_COLOR = "#1a2e23"
TEXT_COLOR = "#374151"
FOOTER_COLOR = "#6b7280"

DEFAULT_ADDRESS = "Host Address"
FOOTER_TEXT = ("Show this QR code to security. Scanning will open a page with the "
               "visitor's details for verification.")


class ImageCompositionError(Exception):
    """The pass card could not be drawn; nothing should be shared."""


# ── URL ──────────────────────────────────────────────────────────────────────

def resolve_origin(cfg=settings) -> str:
    origin = cfg.PUBLIC_ORIGIN.rstrip("/")
    if not cfg.USE_LAN_ORIGIN:
        return origin

    public = urlsplit(origin)
    if public.hostname not in LOOPBACK_HOSTS:
        return origin

    lan_origin = cfg.LAN_ORIGIN.rstrip("/")
    lan = urlsplit(lan_origin)
    if lan.port is None and public.port is not None:
        lan_origin = f"{lan.scheme}://{lan.hostname}:{public.port}"
    logger.debug(f"Loopback origin {origin} replaced by LAN origin {lan_origin}")
    return lan_origin


def normalize_base_path(base_path: Optional[str]) -> str:
    """'/' and '' → '', 'app/' → '/app'."""
    path = (base_path or "").strip().strip("/")
    return f"/{path}" if path else ""


def verification_path(token: str, base_path: Optional[str] = None) -> str:
    base = normalize_base_path(settings.BASE_PATH if base_path is None else base_path)
    return f"{base}/{VERIFY_SEGMENT}/{token}"


def build_verification_url(token: str, cfg=settings) -> str:
    return f"{resolve_origin(cfg)}{verification_path(token, cfg.BASE_PATH)}"


# ── QR ───────────────────────────────────────────────────────────────────────

def render_code(url: str, min_size: Optional[int] = None) -> Image.Image:
    """Render url as a QR code, at least min_size px square."""
    min_size = settings.QR_MIN_SIZE_PX if min_size is None else min_size

    qr = qrcode.QRCode(
        version=None,                 # Auto-size to the URL length
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(url)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")

    if img.width < min_size:
        factor = math.ceil(min_size / img.width)
        img = img.resize((img.width * factor, img.height * factor), Image.NEAREST)
    return img


def image_to_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def share_filename(visitor_name: str) -> str:
    name = re.sub(r"\s+", "_", visitor_name.strip())
    return f"VisitorPass-{name}.png"


# ── Pass card ────────────────────────────────────────────────────────────────

def _load_font(size: int, bold: bool = False):
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> list[str]:
    """Greedy word wrap; a single over-long word gets a line of its own."""
    words = text.split()
    if not words:
        return []
    lines, current = [], words[0]
    for word in words[1:]:
        candidate = f"{current} {word}"
        if draw.textlength(candidate, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    lines.append(current)
    return lines


def details_line(record) -> str:
    return f"{format_day(record.scheduled_date)} : {record.visitor_name} ({record.vehicle_plate})"


def compose_shareable_image(record, host_address: Optional[str], code: Image.Image,
                            title: Optional[str] = None) -> Image.Image:
    try:
        return _compose(record, host_address, code, title or settings.PASS_TITLE)
    except (OSError, ValueError, MemoryError) as e:
        logger.error(f"[SHARE] Pass card composition failed for {getattr(record, 'id', '?')}: {e}")
        raise ImageCompositionError("Could not create the pass image") from e


def _compose(record, host_address: Optional[str], code: Image.Image, title: str) -> Image.Image:
    title_font = _load_font(TITLE_FONT_SIZE, bold=True)
    address_font = _load_font(ADDRESS_FONT_SIZE, bold=True)
    details_font = _load_font(DETAILS_FONT_SIZE)
    footer_font = _load_font(FOOTER_FONT_SIZE)

    content_width = CARD_WIDTH - CARD_PADDING * 2

    # Measure on a scratch surface so the real canvas height is known up front
    measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    blocks = [
        (wrap_text(measure, title, title_font, content_width), title_font, TITLE_LINE_HEIGHT, TITLE_COLOR),
        (wrap_text(measure, host_address or DEFAULT_ADDRESS, address_font, content_width),
         address_font, ADDRESS_LINE_HEIGHT, TITLE_COLOR),
        (wrap_text(measure, details_line(record), details_font, content_width),
         details_font, DETAILS_LINE_HEIGHT, TEXT_COLOR),
        (wrap_text(measure, FOOTER_TEXT, footer_font, content_width), footer_font, FOOTER_LINE_HEIGHT, FOOTER_COLOR),
    ]
    title_block, address_block, details_block, footer_block = blocks

    def block_height(block):
        return len(block[0]) * block[2]

    height = (CARD_PADDING
              + block_height(title_block) + 20
              + QR_DISPLAY_SIZE + 30
              + block_height(address_block) + 10
              + block_height(details_block) + 40
              + block_height(footer_block)
              + CARD_PADDING)

    canvas = Image.new("RGB", (CARD_WIDTH, height), BG_COLOR)
    draw = ImageDraw.Draw(canvas)

    def draw_block(block, y: int) -> int:
        lines, font, line_height, color = block
        for line in lines:
            x = (CARD_WIDTH - draw.textlength(line, font=font)) / 2
            draw.text((x, y), line, font=font, fill=color)
            y += line_height
        return y

    y = draw_block(title_block, CARD_PADDING) + 20

    qr = code.convert("RGB").resize((QR_DISPLAY_SIZE, QR_DISPLAY_SIZE), Image.NEAREST)
    canvas.paste(qr, ((CARD_WIDTH - QR_DISPLAY_SIZE) // 2, y))
    y += QR_DISPLAY_SIZE + 30

    y = draw_block(address_block, y) + 10
    y = draw_block(details_block, y) + 40
    draw_block(footer_block, y)

    logger.debug(f"[SHARE] Composed pass card {CARD_WIDTH}x{height} for {record.visitor_name}")
    return canvas
