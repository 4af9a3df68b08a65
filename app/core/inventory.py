from typing import Any, Dict, Tuple
from app.db.repository import EntityRepository
from app.schemas.entity import EntityType

ACTIVE = "active"

def _in_stock(entity: Dict[str, Any]) -> bool:
    stock = entity.get("currentStock") or 0
    return isinstance(stock, (int, float)) and stock > 0

def available_materials(repo: EntityRepository) -> Tuple[Dict[str, Any], ...]:
    """Active materials with stock on hand, as offered on issue and production forms."""
    return tuple(m for m in repo.filter(EntityType.MATERIALS, {"status": ACTIVE}) if _in_stock(m))

def available_products(repo: EntityRepository) -> Tuple[Dict[str, Any], ...]:
    return tuple(p for p in repo.filter(EntityType.PRODUCTS, {"status": ACTIVE}) if _in_stock(p))

def active_customers(repo: EntityRepository) -> Tuple[Dict[str, Any], ...]:
    return repo.filter(EntityType.CUSTOMERS, {"status": ACTIVE})
