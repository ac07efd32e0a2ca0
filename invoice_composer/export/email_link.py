"""
Email hand-off link.

Builds a ``mailto:`` link addressed to the client, with the amount due
taken from the calculation engine.
"""

from urllib.parse import quote

from invoice_composer.calculation.engine import calculate_totals
from invoice_composer.calculation.formatting import format_currency
from invoice_composer.models.invoice import InvoiceData
from invoice_composer.utils.exceptions import ValidationError

EMAIL_BODY_TEMPLATE = """Dear {client},

Please find attached invoice {number} for your review.

Invoice Details:
- Invoice Number: {number}
- Issue Date: {issued}
- Due Date: {due}
- Amount: {amount}

Thank you for your business!

Best regards,
{company}"""


def build_mailto_link(data: InvoiceData) -> str:
    """
    ``mailto:`` link for sending the invoice to the client.

    Raises:
        ValidationError: If the invoice has no client email.

    Example:
        >>> build_mailto_link(invoice)[:30]
        'mailto:contact@client.com?subj'
    """
    if not data.client_email:
        raise ValidationError("client_email", data.client_email, "Client email required")

    subject = f"Invoice {data.invoice_number} from {data.company_name}"
    body = EMAIL_BODY_TEMPLATE.format(
        client=data.client_name,
        number=data.invoice_number,
        issued=data.invoice_date,
        due=data.due_date,
        amount=format_currency(calculate_totals(data).total, data.currency),
        company=data.company_name,
    )
    return f"mailto:{data.client_email}?subject={quote(subject, safe='')}&body={quote(body, safe='')}"
