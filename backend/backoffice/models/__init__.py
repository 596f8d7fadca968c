# models包初始化文件

from backoffice.models.account import Account
from backoffice.models.client import Client
from backoffice.models.supplier import Supplier
from backoffice.models.item import Item
from backoffice.models.inventory_lot import InventoryLot, InventoryFlow
from backoffice.models.bill import Bill, BILL_STATUS_TRANSITIONS
from backoffice.models.bill_item import BillItem, BillExtraCharge

__all__ = [
    "Account",
    "Client",
    "Supplier",
    "Item",
    "InventoryLot",
    "InventoryFlow",
    "Bill",
    "BILL_STATUS_TRANSITIONS",
    "BillItem",
    "BillExtraCharge",
]
