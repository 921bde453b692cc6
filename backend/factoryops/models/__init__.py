"""Database models"""
from factoryops.models.inventory import RawMaterial, InventoryTransaction
from factoryops.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from factoryops.models.goods_receipt import GoodsReceipt, GoodsReceiptLine
from factoryops.models.purchase_return import PurchaseReturn
from factoryops.models.purchasing_event import PurchasingEvent

__all__ = [
    # Catalog / stock
    "RawMaterial",
    "InventoryTransaction",
    # Purchasing
    "PurchaseOrder",
    "PurchaseOrderLine",
    "GoodsReceipt",
    "GoodsReceiptLine",
    "PurchaseReturn",
    "PurchasingEvent",
]
