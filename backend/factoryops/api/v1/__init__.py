"""
API v1 Router - FactoryOps Purchasing
"""
from fastapi import APIRouter
from factoryops.api.v1.endpoints import purchase_orders, receiving
from factoryops.schemas.common import ErrorResponse

router = APIRouter()

# Error bodies produced by the FactoryOpsException handler
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation failed or invalid order state"},
    404: {"model": ErrorResponse, "description": "Order, receipt or line not found"},
    409: {"model": ErrorResponse, "description": "Duplicate number or order locked"},
    502: {"model": ErrorResponse, "description": "Inventory posting failed"},
}

# Purchase Orders (placement, lifecycle, pending quantities, timeline)
router.include_router(
    purchase_orders.router,
    prefix="/purchase-orders",
    tags=["purchase-orders"],
    responses=ERROR_RESPONSES,
)

# Receiving (goods receipts, replacements, quality control)
router.include_router(
    receiving.router,
    prefix="/purchase-orders",
    tags=["receiving"],
    responses=ERROR_RESPONSES,
)
