"""仪表盘API"""

from typing import Any
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.config import settings
from backoffice.core.deps import get_db, get_current_account_id
from backoffice.core.money import ZERO, round_currency, to_decimal
from backoffice.models.bill import Bill
from backoffice.models.client import Client
from backoffice.models.inventory_lot import InventoryLot
from backoffice.models.item import Item
from backoffice.schemas.dashboard import DashboardData, RecentBill

router = APIRouter()


@router.get("/", response_model=DashboardData)
async def get_dashboard(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
) -> Any:
    """获取仪表盘数据"""
    today = date.today()
    month_start = today.replace(day=1)

    # 账单金额按 Decimal 在 Python 端汇总（SQLite 的 SUM 会退化为浮点）
    bill_rows = (await db.execute(
        select(Bill.total, Bill.status, Bill.due_date, Bill.bill_date).where(Bill.account_id == account_id)
    )).all()

    data = DashboardData(low_stock_threshold=settings.LOW_STOCK_THRESHOLD)
    total_billed = paid_total = due_total = overdue_total = month_billed = ZERO
    for total, status, due_date, bill_date in bill_rows:
        total = to_decimal(total)
        total_billed += total
        if status == "paid":
            paid_total += total
            data.paid_count += 1
        else:
            due_total += total
            data.due_count += 1
            # 逾期：未付且已过到期日
            if due_date and due_date < today:
                overdue_total += total
                data.overdue_count += 1
        if bill_date and bill_date >= month_start:
            month_billed += total
            data.month_bill_count += 1

    data.bill_count = len(bill_rows)
    data.total_billed = round_currency(total_billed)
    data.paid_total = round_currency(paid_total)
    data.due_total = round_currency(due_total)
    data.overdue_total = round_currency(overdue_total)
    data.month_billed = round_currency(month_billed)

    # 客户数
    data.client_count = (await db.execute(
        select(func.count(Client.id)).where(Client.account_id == account_id)
    )).scalar() or 0

    # 库存：货值 = Σ 可用数量 × 成本价
    lot_rows = (await db.execute(
        select(InventoryLot.available_quantity, Item.cost_price)
        .join(Item, InventoryLot.item_id == Item.id)
        .where(InventoryLot.account_id == account_id)
    )).all()

    stock_value = ZERO
    for available, cost_price in lot_rows:
        available = to_decimal(available)
        stock_value += available * to_decimal(cost_price)
        if available <= ZERO:
            data.out_of_stock_count += 1
        elif available <= settings.LOW_STOCK_THRESHOLD:
            data.low_stock_count += 1

    data.lot_count = len(lot_rows)
    data.stock_value = round_currency(stock_value)

    # 最近账单
    recent = (await db.execute(
        select(Bill)
        .options(selectinload(Bill.client))
        .where(Bill.account_id == account_id)
        .order_by(Bill.created_at.desc(), Bill.id.desc())
        .limit(5)
    )).scalars().all()

    data.recent_bills = [
        RecentBill(
            id=b.id,
            bill_no=b.bill_no,
            invoice_number=b.invoice_number,
            client_name=b.client.name if b.client else "",
            total=b.total,
            status=b.status,
            bill_date=b.bill_date)
        for b in recent
    ]

    return data
