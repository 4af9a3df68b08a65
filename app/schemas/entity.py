from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional

class EntityType(str, Enum):
    MATERIALS = "materials"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    SUPPLIERS = "suppliers"
    QUOTATIONS = "quotations"
    INVOICES = "invoices"
    PURCHASE_ORDERS = "purchaseOrders"
    PRODUCTION_BATCHES = "productionBatches"
    QUALITY_TESTS = "qualityTests"
    EMPLOYEES = "employees"
    MATERIAL_ISSUES = "materialIssues"
    STOCK_MOVEMENTS = "stockMovements"

# Only these collections are ever written to durable storage.
PERSISTED_TYPES = tuple(EntityType)

# Field holding the human-readable code the sequence generator reads.
CODE_FIELDS: Dict[EntityType, str] = {
    EntityType.MATERIALS: "code",
    EntityType.PRODUCTS: "code",
    EntityType.CUSTOMERS: "code",
    EntityType.SUPPLIERS: "code",
    EntityType.QUOTATIONS: "quotationNumber",
    EntityType.INVOICES: "invoiceNumber",
    EntityType.PURCHASE_ORDERS: "orderNumber",
    EntityType.PRODUCTION_BATCHES: "batchNumber",
    EntityType.QUALITY_TESTS: "testNumber",
    EntityType.EMPLOYEES: "employeeNumber",
    EntityType.MATERIAL_ISSUES: "issueNumber",
    EntityType.STOCK_MOVEMENTS: "movementNumber",
}

NUMBER_PREFIXES: Dict[EntityType, str] = {
    EntityType.MATERIALS: "MAT-",
    EntityType.PRODUCTS: "PRD-",
    EntityType.CUSTOMERS: "CUS-",
    EntityType.SUPPLIERS: "SUP-",
    EntityType.QUOTATIONS: "QUO-",
    EntityType.INVOICES: "INV-",
    EntityType.PURCHASE_ORDERS: "PO-",
    EntityType.PRODUCTION_BATCHES: "BATCH-",
    EntityType.QUALITY_TESTS: "QT-",
    EntityType.EMPLOYEES: "EMP-",
    EntityType.MATERIAL_ISSUES: "MI-",
    EntityType.STOCK_MOVEMENTS: "SM-",
}

class Entity(BaseModel):
    """A stored record: id and timestamps plus whatever domain fields the page sends."""

    model_config = ConfigDict(extra="allow")

    id: str
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

class EntityStatus(BaseModel):
    entity_type: EntityType
    count: int
    loading: bool
    error: Optional[str] = None
    persist_error: Optional[str] = None

class NumberResponse(BaseModel):
    entity_type: EntityType
    number: str

class EntityList(BaseModel):
    entity_type: EntityType
    total: int
    items: List[Dict[str, Any]]
