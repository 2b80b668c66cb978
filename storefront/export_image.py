"""Draw the order document with Pillow and save it as PNG or PDF."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from storefront.config import EXPORT_FONT_PATH, EXPORT_FONT_SIZE, EXPORT_MARGIN_PX, EXPORT_WIDTH_PX
from storefront.export import OrderDocument, customer_lines, day_heading
from storefront.pricing import needs_minimum_warning
from storefront.rendering import MINIMUM_WARNING_LABEL, format_money

logger = logging.getLogger(__name__)

_BACKGROUND = (31, 41, 55)
_PANEL = (55, 65, 81)
_TEXT = (229, 231, 235)
_MUTED = (156, 163, 175)
_ACCENT = (251, 191, 36)
_WARNING = (239, 68, 68)
_SEPARATOR_THICKNESS_PX = 2
_LINE_GAP_PX = 8
_SECTION_GAP_PX = 18
_FONT_OVERRIDE_ENV = "STOREFRONT_EXPORT_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)


def resolve_export_font_path() -> str | None:
    """
    Resolve a TrueType font for exports.

    Resolution order:
    1. STOREFRONT_EXPORT_FONT_PATH (if set)
    2. EXPORT_FONT_PATH
    3. Known Linux fallbacks
    Returns None when nothing usable exists; callers use Pillow's default font.
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(EXPORT_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        if Path(candidate).is_file():
            return candidate
    return None


def _load_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    font_path = resolve_export_font_path()
    if font_path is None:
        logger.warning("no export font found, using Pillow default")
        return ImageFont.load_default()
    try:
        return ImageFont.truetype(font_path, size)
    except OSError:
        logger.warning("export font unreadable path=%s", font_path)
        return ImageFont.load_default()


def _fit_text_to_px(text: str, font: object, max_width_px: int) -> str:
    scratch = Image.new("RGB", (1, 1))
    draw = ImageDraw.Draw(scratch)
    if draw.textbbox((0, 0), text, font=font)[2] <= max_width_px:
        return text
    ellipsis = "..."
    trimmed = text
    while trimmed:
        candidate = f"{trimmed}{ellipsis}"
        if draw.textbbox((0, 0), candidate, font=font)[2] <= max_width_px:
            return candidate
        trimmed = trimmed[:-1]
    return ellipsis


class _Canvas:
    """Collects positioned draw operations, then sizes the image to fit them."""

    def __init__(self, font: object, bold_font: object) -> None:
        self.font = font
        self.bold_font = bold_font
        self.ops: list[tuple[str, tuple]] = []
        self.y = EXPORT_MARGIN_PX
        scratch = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        bbox = scratch.textbbox((0, 0), "Ag", font=font)
        self.line_height = (bbox[3] - bbox[1]) + _LINE_GAP_PX
        self.right = EXPORT_WIDTH_PX - EXPORT_MARGIN_PX

    def text(self, left: str, right: str = "", fill=_TEXT, bold: bool = False, indent: int = 0) -> None:
        font = self.bold_font if bold else self.font
        max_width = self.right - EXPORT_MARGIN_PX - indent - 160
        self.ops.append(("text", (EXPORT_MARGIN_PX + indent, self.y, _fit_text_to_px(left, font, max_width), fill, font)))
        if right:
            self.ops.append(("rtext", (self.right, self.y, right, fill, font)))
        self.y += self.line_height

    def separator(self) -> None:
        self.y += _LINE_GAP_PX // 2
        self.ops.append(("rect", (EXPORT_MARGIN_PX, self.y, self.right, self.y + _SEPARATOR_THICKNESS_PX - 1)))
        self.y += _SEPARATOR_THICKNESS_PX + _LINE_GAP_PX

    def gap(self, px: int = _SECTION_GAP_PX) -> None:
        self.y += px

    def render(self) -> Image.Image:
        img = Image.new("RGB", (EXPORT_WIDTH_PX, self.y + EXPORT_MARGIN_PX), color=_BACKGROUND)
        draw = ImageDraw.Draw(img)
        for kind, args in self.ops:
            if kind == "rect":
                draw.rectangle(args, fill=_PANEL)
            elif kind == "text":
                x, y, value, fill, font = args
                draw.text((x, y), value, font=font, fill=fill)
            else:
                x, y, value, fill, font = args
                width = draw.textbbox((0, 0), value, font=font)[2]
                draw.text((x - width, y), value, font=font, fill=fill)
        return img


def render_order_image(document: OrderDocument, title: str) -> Image.Image:
    font = _load_font(EXPORT_FONT_SIZE)
    bold_font = _load_font(EXPORT_FONT_SIZE + 4)
    canvas = _Canvas(font, bold_font)

    canvas.text(title, bold=True, fill=_ACCENT)
    canvas.gap()
    canvas.text("Customer Details", bold=True, fill=_ACCENT)
    for label, value in customer_lines(document.customer):
        canvas.text(f"{label}: {value}", indent=12)
    canvas.separator()

    for day in document.days:
        canvas.text(day_heading(day), bold=True, fill=_ACCENT)
        if not day.groups:
            canvas.text("No items", fill=_MUTED, indent=12)
        for category_title, lines in day.groups:
            canvas.text(category_title, fill=_MUTED, indent=12)
            for line in lines:
                label = f"{line.quantity} × {line.name}"
                if needs_minimum_warning(line.quantity):
                    label = f"{label}  {MINIMUM_WARNING_LABEL}"
                fill = _WARNING if needs_minimum_warning(line.quantity) else _TEXT
                canvas.text(label, format_money(line.amount), fill=fill, indent=24)
        if day.notes:
            canvas.text(f"Notes: {day.notes}", fill=_MUTED, indent=12)
        canvas.text("Day subtotal", format_money(day.subtotal), bold=True)
        canvas.separator()

    canvas.text("Subtotal", format_money(document.subtotal))
    canvas.text("Service Fee", format_money(document.service_fee))
    canvas.text("GST (10%)", format_money(document.gst))
    canvas.text("Total", format_money(document.total), bold=True, fill=_ACCENT)
    canvas.text(f"Per head ({document.customer.attendees})", format_money(document.per_head), fill=_MUTED)
    return canvas.render()


def save_order_document(document: OrderDocument, path: str | Path, title: str) -> Path:
    """Save as PDF or PNG depending on the file suffix."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    img = render_order_image(document, title)
    if target.suffix.lower() == ".pdf":
        img.save(target, "PDF", resolution=96.0)
    else:
        img.save(target, "PNG")
    logger.info("order document exported path=%s", target)
    return target
