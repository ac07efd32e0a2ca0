"""
Invoice Preview Renderer Module.

Builds the rendered invoice surface (a render tree) from invoice data.
Amounts are taken from :func:`calculate_totals`, the same function every
export path uses.

Usage:
    renderer = InvoicePreviewRenderer()
    document, surface = renderer.render_document(invoice)

Author: Invoice Composer Team
"""

from typing import List, Optional, Tuple

from invoice_composer.calculation.engine import calculate_totals
from invoice_composer.calculation.formatting import format_currency
from invoice_composer.models.invoice import InvoiceData, InvoiceStatus
from invoice_composer.utils.logger import get_logger
from .tree import Document, RenderNode

logger = get_logger(__name__)

PREVIEW_ID = "invoice-preview"

# Style rules active for the preview; exported verbatim by the HTML path
PREVIEW_STYLESHEET = """
#invoice-preview { font-family: Arial, sans-serif; color: #1f2937; background: #ffffff; }
#invoice-preview table { width: 100%; border-collapse: collapse; }
#invoice-preview th { text-align: left; background: #f9fafb; }
#invoice-preview td, #invoice-preview th { padding: 12px; border-bottom: 1px solid #e5e7eb; }
#invoice-preview .text-right { text-align: right; }
#invoice-preview .shadow-lg { box-shadow: 0 10px 15px rgba(0, 0, 0, 0.1); }
#invoice-preview .rounded-lg { border-radius: 8px; }
#invoice-preview .muted { color: #6b7280; }
""".strip()

STATUS_COLORS = {
    InvoiceStatus.DRAFT: "#6b7280",
    InvoiceStatus.SENT: "#2563eb",
    InvoiceStatus.PAID: "#16a34a",
    InvoiceStatus.OVERDUE: "#dc2626",
}

LABEL_COLOR = "#9ca3af"


def _text(tag: str, text: str, **style: str) -> RenderNode:
    return RenderNode(tag, style={k.replace('_', '-'): v for k, v in style.items()}, text=text)


def _block(*children: RenderNode, cls: str = "", **style: str) -> RenderNode:
    attrs = {'class': cls} if cls else {}
    return RenderNode(
        'div',
        attrs=attrs,
        style={k.replace('_', '-'): v for k, v in style.items()},
        children=list(children),
    )


class InvoicePreviewRenderer:
    """
    Renders InvoiceData into the invoice surface render tree.

    The surface is a card (``shadow-lg rounded-lg``) with header, parties,
    items table, totals, payment information and notes sections.
    """

    def render(self, data: InvoiceData) -> RenderNode:
        """
        Build the invoice surface for ``data``.

        Returns:
            Root node with id ``invoice-preview``.
        """
        surface = RenderNode(
            'div',
            attrs={'id': PREVIEW_ID, 'class': 'shadow-lg rounded-lg space-y-6'},
            style={'background-color': '#ffffff', 'padding': '32px', 'color': '#1f2937'},
        )
        surface.append(
            self._header(data),
            self._parties(data),
            self._items(data),
            self._totals(data),
        )

        payment = self._payment(data)
        if payment is not None:
            surface.append(payment)

        notes = self._notes(data)
        if notes is not None:
            surface.append(notes)

        logger.debug(f"Rendered preview for invoice {data.invoice_number} ({len(data.items)} items)")
        return surface

    def render_document(self, data: InvoiceData) -> Tuple[Document, RenderNode]:
        """
        Render ``data`` and mount it in a fresh document.

        Returns:
            Tuple of (document, surface node mounted in it).
        """
        surface = self.render(data)
        document = Document(
            stylesheets=[PREVIEW_STYLESHEET],
            title=f"Invoice {data.invoice_number}",
        )
        document.attach(surface)
        return document, surface

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _header(self, data: InvoiceData) -> RenderNode:
        company: List[RenderNode] = []
        if data.company_logo:
            company.append(RenderNode(
                'img',
                attrs={'src': data.company_logo, 'alt': 'Company Logo'},
                style={'max-width': '200px', 'height': 'auto', 'margin-bottom': '12px'},
            ))
        company.append(_text('h1', data.company_name, color=data.brand_color, font_size='24px'))
        company.extend(
            _text('p', line, color='#4b5563')
            for line in self._address_lines(
                data.company_address, data.company_city, data.company_state,
                data.company_zip, data.company_country
            )
        )
        for contact in (data.company_phone, data.company_email, data.company_website):
            if contact:
                company.append(_text('p', contact, color='#4b5563'))
        if data.company_tax_id:
            company.append(_text('p', f"Tax ID: {data.company_tax_id}", color=LABEL_COLOR))

        meta = _block(
            _text('h2', "INVOICE", font_size='28px', color='#111827'),
            _text('p', f"# {data.invoice_number}"),
            _text('p', f"Issue date: {data.invoice_date}"),
            _text('p', f"Due date: {data.due_date}"),
            _text('p', f"Terms: {data.payment_terms}") if data.payment_terms else RenderNode('br'),
            _text('p', data.status.value.upper(), color=STATUS_COLORS[data.status]),
            text_align='right',
        )

        row = RenderNode('tr', children=[
            RenderNode('td', style={'width': '60%'}, children=company),
            RenderNode('td', children=[meta]),
        ])
        return _block(RenderNode('table', children=[row]), cls='mb-8', border_bottom=f"2px solid {data.brand_color}")

    def _parties(self, data: InvoiceData) -> RenderNode:
        client = [_text('h3', "Bill To", color=LABEL_COLOR), _text('p', data.client_name, font_size='16px')]
        client.extend(
            _text('p', line) for line in self._address_lines(
                data.client_address, data.client_city, data.client_state,
                data.client_zip, data.client_country
            )
        )
        for contact in (data.client_email, data.client_phone):
            if contact:
                client.append(_text('p', contact, color='#4b5563'))
        return _block(*client, cls='mb-8')

    def _items(self, data: InvoiceData) -> RenderNode:
        header = RenderNode('tr', children=[
            _text('th', "Description", width='40%'),
            _text('th', "Code"),
            _text('th', "Qty", text_align='right'),
            _text('th', "Unit Price", text_align='right'),
            _text('th', "Total", text_align='right'),
        ])
        rows = [
            RenderNode('tr', children=[
                _text('td', item.description, width='40%'),
                _text('td', item.code or "", color='#4b5563'),
                _text('td', f"{item.quantity:g}", text_align='right'),
                _text('td', format_currency(item.unit_price, data.currency), text_align='right'),
                _text('td', format_currency(item.total, data.currency), text_align='right'),
            ])
            for item in data.items
        ]
        table = RenderNode('table', children=[
            RenderNode('thead', children=[header]),
            RenderNode('tbody', children=rows),
        ])
        return _block(table, cls='mb-8 rounded-lg')

    def _totals(self, data: InvoiceData) -> RenderNode:
        totals = calculate_totals(data)
        currency = data.currency

        def line(label: str, amount: str, **style: str) -> RenderNode:
            return RenderNode('tr', children=[
                _text('td', label, **style),
                _text('td', amount, text_align='right', **style),
            ])

        rows = [line("Subtotal", format_currency(totals.subtotal, currency))]
        if totals.discount_amount > 0:
            label = "Discount"
            if data.discount.type.value == 'percentage':
                label = f"Discount ({data.discount.value:g}%)"
            rows.append(line(label, f"-{format_currency(totals.discount_amount, currency)}", color='#dc2626'))
        if data.tax_rate > 0:
            rows.append(line(f"Tax ({data.tax_rate:g}%)", format_currency(totals.tax, currency)))
        rows.append(line("Total", format_currency(totals.total, currency), color=data.brand_color, font_size='18px'))

        return _block(
            RenderNode('table', attrs={'class': 'totals'}, children=rows),
            cls='mb-8',
            width='50%',
            margin_top='8px',
        )

    def _payment(self, data: InvoiceData) -> Optional[RenderNode]:
        if not (data.payment_methods or data.payment_instructions or data.bank_details):
            return None
        children = [_text('h3', "Payment Information", color=LABEL_COLOR)]
        if data.payment_methods:
            children.append(_text('p', "Accepted: " + ", ".join(data.payment_methods)))
        if data.payment_instructions:
            children.append(_text('p', data.payment_instructions))
        if data.bank_details:
            children.append(_text('p', data.bank_details, color='#4b5563'))
        return _block(*children, cls='mb-8 rounded-lg shadow-sm', background_color='#f9fafb', padding='16px')

    def _notes(self, data: InvoiceData) -> Optional[RenderNode]:
        if not (data.notes or data.terms):
            return None
        children = []
        if data.notes:
            children.extend([_text('h3', "Notes", color=LABEL_COLOR), _text('p', data.notes)])
        if data.terms:
            children.extend([_text('h3', "Terms & Conditions", color=LABEL_COLOR), _text('p', data.terms, color='#4b5563')])
        return _block(*children)

    @staticmethod
    def _address_lines(address: str, city: str, state: str, zip_code: str, country: str) -> List[str]:
        city_line = ", ".join(part for part in (city, f"{state} {zip_code}".strip()) if part)
        return [line for line in (address, city_line, country) if line]
