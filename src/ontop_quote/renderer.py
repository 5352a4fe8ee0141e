#!/usr/bin/env python3
"""
Document Renderer
Lays out a calculated quote as a branded A4 PDF using PyMuPDF.
"""

import logging
import re
from datetime import date, timedelta
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import fitz

from .config import get_config
from .exceptions import RenderFailure
from .field_classifier import classify, phrase_list_version
from .formatters import format_money, format_number
from .models import ConvertedField, FormData, QuoteData

logger = logging.getLogger(__name__)

PAGE_WIDTH = 595.28   # A4 in points
PAGE_HEIGHT = 841.89
MARGIN = 40
HEADER_HEIGHT = 80
HEADING_HEIGHT = 26
ROW_HEIGHT = 22
FONT_SIZE = 8
SECTION_GAP = 20

FONT = "helv"
FONT_BOLD = "hebo"


def _rgb(hex_color: str) -> Tuple[float, float, float]:
    hex_color = hex_color.lstrip('#')
    return tuple(int(hex_color[i:i + 2], 16) / 255 for i in (0, 2, 4))


COLORS = {
    'ontop_pink': _rgb('#FF5A71'),
    'green': _rgb('#16A34A'),
    'blue': _rgb('#2563EB'),
    'blue_bg': _rgb('#EBF5FF'),
    'note_text': _rgb('#2B4B80'),
    'row_highlight': _rgb('#F9FAFB'),
    'total_row': _rgb('#F3F4F6'),
    'text': _rgb('#1A1A1A'),
    'text_light': _rgb('#64748B'),
    'white': (1, 1, 1),
}


def build_file_name(client_name: str, today: date) -> str:
    """"Acme  Corp" on 2024-05-01 -> "Ontop-Quote-Acme-Corp-2024-05-01.pdf"."""
    prefix = get_config("quote.file_name_prefix", "Ontop-Quote")
    client = re.sub(r"[\s/\\]+", "-", client_name.strip())
    return f"{prefix}-{client}-{today.isoformat()}.pdf"


class _Cursor:
    """Current page and vertical position; starts a new page when space runs out."""

    def __init__(self, doc):
        self.doc = doc
        self.page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = 0.0

    def ensure_space(self, height: float):
        if self.y + height > PAGE_HEIGHT - MARGIN:
            self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
            self.y = MARGIN


class QuoteDocumentRenderer:
    """Renders QuoteData + FormData to ``Ontop-Quote-<Client>-<date>.pdf``."""

    def __init__(self):
        self.brand_name = get_config("quote.brand_name", "Ontop")
        self.tagline = get_config("quote.tagline", "Global Employment Solutions")
        self.valid_days = int(get_config("quote.valid_days", 30))
        self.content_width = PAGE_WIDTH - 2 * MARGIN
        self.local_column_right = MARGIN + self.content_width * 0.72
        self.usd_column_right = PAGE_WIDTH - MARGIN - 8

    def validate(self, quote: Optional[QuoteData], form: Optional[FormData]):
        """Refuse to render a quote missing anything the document needs."""
        if quote is None or form is None:
            raise RenderFailure("no calculated quote to render")
        if not quote.pay_fields:
            raise RenderFailure("quote has no 'Amount You Pay' rows")
        if not form.client_name.strip() or not form.ae_name.strip():
            raise RenderFailure("client name and quote sender are required")

    def render(self, quote: QuoteData, form: FormData, output_dir: Union[str, Path] = '.',
               today: Optional[date] = None) -> Path:
        """
        Write the quote PDF and return its path.

        Raises:
            RenderFailure: If validation or document generation fails.
        """
        self.validate(quote, form)
        today = today or date.today()
        output_path = Path(output_dir) / build_file_name(form.client_name, today)

        doc = fitz.open()
        try:
            cursor = _Cursor(doc)
            self._draw_header(cursor, form, today)
            self._draw_title(cursor, quote, form)

            self._draw_table(cursor, "Amount You Pay", quote.pay_fields, quote, 'pay',
                             COLORS['ontop_pink'], total=(quote.total_you_pay, quote.total_you_pay_usd))
            self._draw_table(cursor, "Amount Employee Gets", quote.employee_fields, quote, 'employee',
                             COLORS['green'])
            setup_total = (sum(f.local_amount for f in quote.setup_summary),
                           sum(f.usd_amount for f in quote.setup_summary))
            self._draw_table(cursor, "Setup Summary", quote.setup_summary, quote, 'pay',
                             COLORS['blue'], total=setup_total)

            self._draw_exchange_rate(cursor, quote)
            self._draw_notes(cursor, quote, today)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            doc.save(str(output_path))
        except RenderFailure:
            raise
        except Exception as e:
            logger.error(f"Error generating PDF: {e}")
            raise RenderFailure(str(e)) from e
        finally:
            doc.close()

        logger.info(f"✅ Quote saved to: {output_path}")
        return output_path

    def _text(self, page, x: float, y: float, text: str, size: float = FONT_SIZE,
              bold: bool = False, color=COLORS['text']):
        page.insert_text((x, y), text, fontsize=size, fontname=FONT_BOLD if bold else FONT, color=color)

    def _text_right(self, page, right: float, y: float, text: str, size: float = FONT_SIZE,
                    bold: bool = False, color=COLORS['text']):
        width = fitz.get_text_length(text, fontname=FONT_BOLD if bold else FONT, fontsize=size)
        self._text(page, right - width, y, text, size, bold, color)

    def _fit(self, text: str, max_width: float, bold: bool = False) -> str:
        fontname = FONT_BOLD if bold else FONT
        if fitz.get_text_length(text, fontname=fontname, fontsize=FONT_SIZE) <= max_width:
            return text
        while text and fitz.get_text_length(text + "...", fontname=fontname, fontsize=FONT_SIZE) > max_width:
            text = text[:-1]
        return text + "..."

    def _wrap(self, text: str, max_width: float) -> list:
        lines, current = [], ""
        for word in text.split():
            candidate = f"{current} {word}".strip()
            if current and fitz.get_text_length(candidate, fontname=FONT, fontsize=FONT_SIZE) > max_width:
                lines.append(current)
                current = word
            else:
                current = candidate
        return lines + [current] if current else lines or [""]

    def _draw_header(self, cursor: _Cursor, form: FormData, today: date):
        page = cursor.page
        page.draw_rect(fitz.Rect(0, 0, PAGE_WIDTH, HEADER_HEIGHT), color=None, fill=COLORS['ontop_pink'])
        page.draw_rect(fitz.Rect(MARGIN, 24, MARGIN + 32, 56), color=None, fill=COLORS['white'])

        self._text(page, MARGIN + 44, 40, self.brand_name, size=18, bold=True, color=COLORS['white'])
        self._text(page, MARGIN + 44, 54, self.tagline, size=10, color=COLORS['white'])

        valid_until = today + timedelta(days=self.valid_days)
        right = PAGE_WIDTH - MARGIN
        self._text_right(page, right, 30, f"Quote Sender: {form.ae_name}", size=10, color=COLORS['white'])
        self._text_right(page, right, 44, f"Client Name: {form.client_name}", size=10, color=COLORS['white'])
        self._text_right(page, right, 58, f"Valid Until: {valid_until.isoformat()}", size=10, color=COLORS['white'])

        cursor.y = HEADER_HEIGHT + SECTION_GAP

    def _draw_title(self, cursor: _Cursor, quote: QuoteData, form: FormData):
        page = cursor.page
        self._text(page, MARGIN, cursor.y + 14, "Quote Summary", size=16, bold=True)
        self._text(page, MARGIN, cursor.y + 30,
                   f"Quote for {form.client_name} - Generated by {form.ae_name}", size=10,
                   color=COLORS['text_light'])

        if quote.quote_currency == 'USD':
            headline = f"{format_money(quote.total_you_pay_usd, 'USD')} ({format_money(quote.total_you_pay, quote.local_currency)})"
        else:
            headline = f"{format_money(quote.total_you_pay, quote.local_currency)} ({format_money(quote.total_you_pay_usd, 'USD')})"
        self._text(page, MARGIN, cursor.y + 46, f"Total you pay per month: {headline}", size=10, bold=True)

        cursor.y += 46 + SECTION_GAP

    def _draw_table(self, cursor: _Cursor, title: str, fields: Sequence[ConvertedField],
                    quote: QuoteData, table_type: str, color, total: Optional[Tuple[float, float]] = None):
        cursor.ensure_space(HEADING_HEIGHT + 2 * ROW_HEIGHT)
        page = cursor.page
        left, right = MARGIN, PAGE_WIDTH - MARGIN

        page.draw_rect(fitz.Rect(left, cursor.y, right, cursor.y + HEADING_HEIGHT), color=None, fill=color)
        self._text(page, left + 8, cursor.y + 17, title, size=11, bold=True, color=COLORS['white'])
        cursor.y += HEADING_HEIGHT

        if not fields:
            self._text(page, left + 8, cursor.y + 15, "No data available for this section",
                       color=COLORS['text_light'])
            cursor.y += ROW_HEIGHT + SECTION_GAP
            return

        self._draw_row(cursor, "Description", f"Local ({quote.local_currency})", "USD",
                       bold=True, fill=COLORS['total_row'])

        for field in fields:
            tags = classify(field.label, table_type)
            emphasized = tags.subtotal or (table_type == 'employee' and tags.net_salary)
            self._draw_row(
                cursor,
                field.label,
                format_money(field.local_amount, quote.local_currency),
                format_money(field.usd_amount, 'USD'),
                bold=emphasized or tags.gross_salary,
                fill=COLORS['row_highlight'] if emphasized else None,
            )

        if total is not None:
            self._draw_row(cursor, "Total", format_money(total[0], quote.local_currency),
                           format_money(total[1], 'USD'), bold=True, fill=COLORS['total_row'])

        cursor.y += SECTION_GAP

    def _draw_row(self, cursor: _Cursor, label: str, local: str, usd: str,
                  bold: bool = False, fill=None):
        cursor.ensure_space(ROW_HEIGHT)
        page = cursor.page
        top = cursor.y
        if fill:
            page.draw_rect(fitz.Rect(MARGIN, top, PAGE_WIDTH - MARGIN, top + ROW_HEIGHT), color=None, fill=fill)
        page.draw_line(fitz.Point(MARGIN, top + ROW_HEIGHT), fitz.Point(PAGE_WIDTH - MARGIN, top + ROW_HEIGHT),
                       color=COLORS['total_row'], width=0.5)

        baseline = top + ROW_HEIGHT / 2 + FONT_SIZE * 0.35
        label_width = self.local_column_right - MARGIN - 110
        self._text(page, MARGIN + 8, baseline, self._fit(label, label_width, bold), bold=bold)
        self._text_right(page, self.local_column_right, baseline, local, bold=bold)
        self._text_right(page, self.usd_column_right, baseline, usd, bold=bold)
        cursor.y += ROW_HEIGHT

    def _draw_exchange_rate(self, cursor: _Cursor, quote: QuoteData):
        if quote.exchange_rate == 1:
            return
        cursor.ensure_space(40)
        page = cursor.page
        self._text(page, MARGIN, cursor.y + 10,
                   f"Exchange Rate: 1 {quote.local_currency} = {format_number(1 / quote.exchange_rate, 4)} USD",
                   bold=True, color=COLORS['note_text'])
        self._text(page, MARGIN, cursor.y + 22,
                   "Rates are indicative and may vary. Contracts are always processed in local currency.",
                   color=COLORS['note_text'])
        cursor.y += 30 + SECTION_GAP / 2

    def _draw_notes(self, cursor: _Cursor, quote: QuoteData, today: date):
        notes = [
            f"Currency conversions based on rates on {today.isoformat()}, may vary - contracts always in local currency.",
            "Setup Cost = one month's total employment cost (Security Deposit) + Ontop fee; "
            "secures Ontop against potential defaults.",
        ]
        if quote.has_severance_pay:
            notes.append("No Dismissal Deposit: the severance pay in this quote already covers termination costs.")
        else:
            notes.append("Dismissal Deposit = one-twelfth of salary, provisioned for future termination costs.")

        lines = []
        for note in notes:
            wrapped = self._wrap(note, self.content_width - 40)
            lines.append("- " + wrapped[0])
            lines.extend("  " + line for line in wrapped[1:])

        height = 40 + 12 * len(lines) + 16
        cursor.ensure_space(height)
        page = cursor.page
        top = cursor.y
        page.draw_rect(fitz.Rect(MARGIN, top, PAGE_WIDTH - MARGIN, top + height), color=None, fill=COLORS['blue_bg'])

        self._text(page, MARGIN + 12, top + 20, "Important Notes:", size=10, bold=True, color=COLORS['note_text'])
        y = top + 36
        for line in lines:
            self._text(page, MARGIN + 12, y, line, color=COLORS['note_text'])
            y += 12

        footer = f"Generated by Ontop Quote Generator - {today.isoformat()} - phrase list v{phrase_list_version()}"
        self._text(page, MARGIN + 12, y + 6, footer,
                   size=FONT_SIZE - 1, color=COLORS['text_light'])
        cursor.y = top + height
