from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, tzinfo
from io import BytesIO
from typing import Dict, List, Optional, Sequence, Tuple

from pypdf import PdfReader, PdfWriter
from PIL import Image
from reportlab.pdfgen import canvas
from reportlab.lib.utils import ImageReader

from ..models.signature_enums import DatePosition

TEXT_LINE_SPACE = 10.0


def _hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    h = (hex_color or "000000").lstrip("#")
    if len(h) != 6:
        return (0, 0, 0)
    try:
        return (int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))
    except ValueError:
        return (0, 0, 0)


@dataclass(frozen=True)
class LabelStyle:
    """Fonts, colours and date formats for the text drawn next to a signature."""
    date_format: str = "%d/%m/%Y"
    time_format: str = "%H:%M"
    label_font_size: int = 7
    signer_font_size: int = 6
    label_color: str = "333333"
    secondary_color: str = "666666"
    timezone: Optional[tzinfo] = None


@dataclass(frozen=True)
class SignatureStamp:
    """
    One signature to draw on one page.

    ``top`` is the distance from the top of the page to the top of the box,
    already reduced to the target page.
    """
    page_index: int
    x: float
    top: float
    width: float
    height: float
    png_signature: bytes
    label: Optional[str] = None
    signer_name: Optional[str] = None
    signed_at: Optional[datetime] = None
    date_position: DatePosition = DatePosition.RIGHT


def local_time(moment: datetime, zone: Optional[tzinfo]) -> datetime:
    """Convert an aware *moment* to the display zone; naive values are shown as stored."""
    if zone is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(zone)


def signature_box(stamp: SignatureStamp, text_lines: int) -> Tuple[float, float, float]:
    """
    Size of the image area inside the slot box.

    Returns:
        (signature width, signature height, vertical offset from box top)
    """
    avail_h = max(1.0, stamp.height - text_lines * TEXT_LINE_SPACE)
    pos = stamp.date_position
    if pos is DatePosition.BELOW:
        return stamp.width, avail_h * 0.80, avail_h * 0.20
    if pos is DatePosition.ABOVE:
        return stamp.width, avail_h * 0.80, 0.0
    if pos is DatePosition.NONE:
        return stamp.width, avail_h, 0.0
    return stamp.width * 0.75, avail_h, 0.0


class PdfSigner:
    @staticmethod
    def _fill(c: canvas.Canvas, hex_color: str) -> None:
        r, g, b = _hex_to_rgb(hex_color)
        c.setFillColorRGB(r / 255.0, g / 255.0, b / 255.0)

    @staticmethod
    def _draw_stamp(c: canvas.Canvas, page_h: float, stamp: SignatureStamp, style: LabelStyle) -> None:
        text_lines = (1 if stamp.label else 0) + (1 if stamp.signer_name else 0)
        sig_w, sig_h, sig_offset = signature_box(stamp, text_lines)

        # PDF origin is bottom-left; boxes are stored from the top.
        sig_top = page_h - stamp.top + sig_offset
        sig_bottom = sig_top - sig_h

        # --- Signaturbild (fit into box, keep aspect, anchored top-left)
        sig = Image.open(BytesIO(stamp.png_signature)).convert("RGBA")
        c.drawImage(
            ImageReader(sig), stamp.x, sig_bottom,
            width=sig_w, height=sig_h,
            mask="auto", preserveAspectRatio=True, anchor="nw",
        )

        # --- Label / Name below the signature
        y = sig_bottom - 3
        if stamp.label:
            PdfSigner._fill(c, style.label_color)
            c.setFont("Helvetica", style.label_font_size)
            c.drawString(stamp.x, y, stamp.label)
            y -= TEXT_LINE_SPACE
        if stamp.signer_name:
            PdfSigner._fill(c, style.secondary_color)
            c.setFont("Helvetica", style.signer_font_size)
            c.drawString(stamp.x, y, stamp.signer_name)

        # --- Datum
        if stamp.date_position is not DatePosition.NONE and stamp.signed_at:
            shown = local_time(stamp.signed_at, style.timezone)
            date_str = shown.strftime(style.date_format)
            time_str = shown.strftime(style.time_format)
            PdfSigner._fill(c, style.secondary_color)
            if stamp.date_position is DatePosition.RIGHT:
                center = sig_top - sig_h / 2
                date_x = stamp.x + sig_w + 5
                c.setFont("Helvetica", 7)
                c.drawString(date_x, center + 5, date_str)
                c.setFont("Helvetica", 6)
                c.drawString(date_x, center - 7, time_str)
            else:
                date_x = stamp.x + stamp.width / 2 - 25
                date_y = sig_bottom - 15 if stamp.date_position is DatePosition.BELOW else sig_top + 5
                c.setFont("Helvetica", 7)
                c.drawString(date_x, date_y, f"{date_str} {time_str}")

        c.setFillColorRGB(0, 0, 0)

    @staticmethod
    def _make_overlay(
        page_w: float,
        page_h: float,
        stamps: Sequence[SignatureStamp],
        style: LabelStyle,
        origin: Tuple[float, float] = (0.0, 0.0),
    ) -> bytes:
        """
        Draw every stamp of one page onto an overlay of the same size.
        *origin* is the lower-left corner of the target page's media box.
        """
        buf = BytesIO()
        left, bottom = origin
        c = canvas.Canvas(buf, pagesize=(left + page_w, bottom + page_h))
        c.translate(left, bottom)
        for stamp in stamps:
            PdfSigner._draw_stamp(c, page_h, stamp, style)
        c.save()
        return buf.getvalue()

    @staticmethod
    def stamp_pdf(
        pdf_bytes: bytes,
        stamps: Sequence[SignatureStamp],
        style: Optional[LabelStyle] = None,
    ) -> bytes:
        """
        Liest das PDF, malt die Overlays auf die Ziel-Seiten und gibt das neue PDF zurück.
        """
        style = style or LabelStyle()
        reader = PdfReader(BytesIO(pdf_bytes))
        writer = PdfWriter()

        by_page: Dict[int, List[SignatureStamp]] = {}
        for stamp in stamps:
            by_page.setdefault(stamp.page_index, []).append(stamp)

        for i, source_page in enumerate(reader.pages):
            page = writer.add_page(source_page)
            if i in by_page:
                box = page.mediabox
                w, h = float(box.width), float(box.height)
                origin = (float(box.left), float(box.bottom))
                overlay_pdf = PdfSigner._make_overlay(w, h, by_page[i], style, origin)
                overlay_reader = PdfReader(BytesIO(overlay_pdf))
                page.merge_page(overlay_reader.pages[0])

        out = BytesIO()
        writer.write(out)
        return out.getvalue()
