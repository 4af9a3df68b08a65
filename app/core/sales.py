import logging
from typing import Any, Dict, Optional
from app.db.repository import EntityRepository
from app.schemas.entity import EntityType

logger = logging.getLogger(__name__)

# Fields carried from an accepted quotation onto its invoice.
QUOTATION_TO_INVOICE_FIELDS = ("customerId", "customerName", "items", "subtotal", "tax", "total", "notes")

def convert_quotation_to_invoice(repo: EntityRepository, quotation_id: str) -> Optional[Dict[str, Any]]:
    """
    Create a sales invoice from a quotation.
    Returns the new invoice, or None (with the error recorded on quotations)
    when the quotation does not exist.
    """
    quotation = repo.get(EntityType.QUOTATIONS, quotation_id)
    if quotation is None:
        message = f"Quotation '{quotation_id}' not found"
        logger.warning(message)
        repo.record_error(EntityType.QUOTATIONS, message)
        return None

    invoice_data = {field: quotation.get(field) for field in QUOTATION_TO_INVOICE_FIELDS}
    invoice_data.update({
        "invoiceNumber": repo.generate_number(EntityType.INVOICES),
        "quotationId": quotation_id,
        "type": "sales",
    })
    invoice = repo.add(EntityType.INVOICES, invoice_data)
    logger.info(f"Quotation {quotation_id} converted to invoice {invoice['invoiceNumber']}")
    return invoice
