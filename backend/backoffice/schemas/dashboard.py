"""仪表盘Schema"""
from typing import List, Optional
from decimal import Decimal
from pydantic import BaseModel
from datetime import date


class RecentBill(BaseModel):
    id: int
    bill_no: str
    invoice_number: str
    client_name: str = ""
    total: Decimal
    status: str
    bill_date: date


class DashboardData(BaseModel):
    """仪表盘数据"""
    # 账单
    bill_count: int = 0
    total_billed: Decimal = Decimal("0")
    paid_total: Decimal = Decimal("0")
    paid_count: int = 0
    due_total: Decimal = Decimal("0")
    due_count: int = 0
    overdue_total: Decimal = Decimal("0")
    overdue_count: int = 0

    # 本月
    month_billed: Decimal = Decimal("0")
    month_bill_count: int = 0

    # 客户与库存
    client_count: int = 0
    lot_count: int = 0
    stock_value: Decimal = Decimal("0")
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    low_stock_threshold: Optional[Decimal] = None

    # 最近账单
    recent_bills: List[RecentBill] = []
