"""Warranty certificate rendering (plain text and PDF)."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Mapping

from fpdf import FPDF
from fpdf.enums import XPos, YPos
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..core.config import settings
from .formatting import format_date, parse_timestamp
from .warranty import is_warranty_active

TEMPLATE_NAME = "warranty_certificate.txt"
PDF_FONT_FAMILY = "Helvetica"


def plan_label(plan: Any) -> str:
    return str(plan or "").replace("_", " ")


@lru_cache(maxsize=1)
def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(settings.templates_dir)),
        undefined=StrictUndefined,
        autoescape=False,
    )
    env.filters["fmt_date"] = format_date
    env.filters["plan_label"] = plan_label
    return env


def certificate_filename(warranty: Mapping[str, Any], extension: str = "txt") -> str:
    return f"warranty_{warranty['warranty_id']}.{extension}"


def render_certificate_text(warranty: Mapping[str, Any], now: datetime | None = None) -> str:
    now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    template = _environment().get_template(TEMPLATE_NAME)
    return template.render(
        warranty=warranty,
        shop_name=settings.SHOP_NAME,
        status="ACTIVE" if is_warranty_active(warranty.get("warranty_end_date"), now) else "EXPIRED",
        generated_on=now,
    ).strip()


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1.
    return text.encode("latin-1", "replace").decode("latin-1")


def render_certificate_pdf(warranty: Mapping[str, Any], now: datetime | None = None) -> bytes:
    """Lay the text certificate out on an A4 page: bold title, body below."""

    title, _, body = render_certificate_text(warranty, now).partition("\n")

    pdf = FPDF(unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    effective_width = pdf.w - pdf.l_margin - pdf.r_margin

    pdf.set_font(PDF_FONT_FAMILY, "B", 16)
    pdf.cell(effective_width, 10, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
    pdf.ln(4)

    pdf.set_font(PDF_FONT_FAMILY, "", 11)
    for line in body.strip("\n").splitlines():
        if not line.strip():
            pdf.ln(3)
            continue
        pdf.multi_cell(effective_width, 6, _latin1(line), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    return bytes(pdf.output())


__all__ = ["certificate_filename", "plan_label", "render_certificate_pdf", "render_certificate_text"]
