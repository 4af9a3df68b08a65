from fastapi import APIRouter, Depends, HTTPException
from app.api.entities import get_repository
from app.core.inventory import active_customers, available_materials, available_products
from app.core.sales import convert_quotation_to_invoice
from app.db.repository import EntityRepository

router = APIRouter(tags=["sales", "inventory"])

@router.post("/quotations/{quotation_id}/convert", status_code=201)
async def convert_quotation(quotation_id: str, repo: EntityRepository = Depends(get_repository)):
    """Turn an accepted quotation into a sales invoice with the next invoice number."""
    invoice = convert_quotation_to_invoice(repo, quotation_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Quotation '{quotation_id}' not found")
    return invoice

@router.get("/available/materials")
async def list_available_materials(repo: EntityRepository = Depends(get_repository)):
    return list(available_materials(repo))

@router.get("/available/products")
async def list_available_products(repo: EntityRepository = Depends(get_repository)):
    return list(available_products(repo))

@router.get("/available/customers")
async def list_active_customers(repo: EntityRepository = Depends(get_repository)):
    return list(active_customers(repo))
