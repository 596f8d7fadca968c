"""
结算引擎 - 账单的创建、修改、删除与库存占用的原子编排

每个公开函数都是一个完整的工作单元（一个数据库事务）：
- create_bill: 校验 → 锁批次 → 逐行检查可用量 → 计算金额 → 写表头/明细/附加费 → 占用库存
- update_bill_header / update_bill_status: 只改表头，不碰明细和库存
- delete_bill: 锁批次 → 释放全部占用 → 删除明细、附加费、表头

任何一步失败都整体回滚，调用方看不到部分写入。
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.config import settings
from backoffice.core.exceptions import (
    BillNotFound, ClientNotFound, ConsistencyError, InsufficientStock, LotNotFound, ValidationError
)
from backoffice.core.money import ZERO, compute_bill_totals, line_total, round_currency, to_decimal
from backoffice.db.session import transaction
from backoffice.models.bill import Bill
from backoffice.models.bill_item import BillExtraCharge, BillItem
from backoffice.models.client import Client
from backoffice.models.inventory_lot import InventoryLot
from backoffice.schemas.bill import BillCreate, BillUpdate
from backoffice.services import inventory_ledger

logger = logging.getLogger(__name__)


# ===== 查询 =====

def base_bill_query():
    """构建包含常用关联关系的基础查询"""
    return select(Bill).options(
        selectinload(Bill.client),
        selectinload(Bill.items).selectinload(BillItem.lot).selectinload(InventoryLot.item),
        selectinload(Bill.extra_charges))


async def load_bill(
    db: AsyncSession,
    account_id: int,
    bill_id: int,
    for_update: bool = False) -> Optional[Bill]:
    """加载包含关联的账单（限定账户）"""
    query = (
        base_bill_query()
        .where(Bill.id == bill_id, Bill.account_id == account_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_bill(db: AsyncSession, account_id: int, bill_id: int) -> Bill:
    bill = await load_bill(db, account_id, bill_id)
    if not bill:
        raise BillNotFound(bill_id)
    return bill


async def list_bills(
    db: AsyncSession,
    account_id: int,
    *,
    status: Optional[str] = None,
    client_id: Optional[int] = None,
    search: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None) -> Tuple[List[Bill], int]:
    """账单列表（含客户），按创建时间倒序"""
    conditions = [Bill.account_id == account_id]
    if status:
        conditions.append(Bill.status == status)
    if client_id:
        conditions.append(Bill.client_id == client_id)
    if search:
        conditions.append(or_(
            Bill.bill_no.contains(search),
            Bill.invoice_number.contains(search),
        ))

    total = (await db.execute(
        select(func.count(Bill.id)).where(*conditions)
    )).scalar() or 0

    query = (
        select(Bill)
        .options(selectinload(Bill.client))
        .where(*conditions)
        .order_by(Bill.created_at.desc(), Bill.id.desc())
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def generate_bill_no(db: AsyncSession, account_id: int, on_date: Optional[date] = None) -> str:
    """生成账单号：BL + 日期 + 三位序号（按账户、按天递增）"""
    date_str = (on_date or datetime.now().date()).strftime("%Y%m%d")
    prefix = f"BL{date_str}"

    # 序号超过 999 后位数变长，先按长度再按字面取最大
    result = await db.execute(
        select(Bill.bill_no)
        .where(
            Bill.account_id == account_id,
            Bill.bill_no.like(f"{prefix}%"),
        )
        .order_by(func.length(Bill.bill_no).desc(), Bill.bill_no.desc())
        .limit(1)
    )
    max_no = result.scalar()

    if max_no:
        try:
            seq = int(max_no[len(prefix):]) + 1
        except ValueError:
            seq = 1
    else:
        seq = 1

    return f"{prefix}{seq:03d}"


async def _get_client(db: AsyncSession, account_id: int, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if not client or client.account_id != account_id:
        raise ClientNotFound(client_id)
    return client


def _check_dates(bill_date: date, due_date: Optional[date]) -> None:
    if due_date is not None and due_date < bill_date:
        raise ValidationError("到期日不能早于开单日期", field="due_date")


# ===== 创建 =====

def _check_availability(bill_in: BillCreate, lots: Dict[int, InventoryLot]) -> None:
    """
    按调用方给出的顺序逐行检查，同一批次出现多次时累计；第一行不满足即整单拒绝
    """
    claimed: Dict[int, Decimal] = {}
    for index, line in enumerate(bill_in.items):
        lot = lots.get(line.lot_id)
        if lot is None:
            raise LotNotFound(line.lot_id)
        already = claimed.get(line.lot_id, ZERO)
        remaining = lot.available_quantity - already
        if line.quantity > remaining:
            raise InsufficientStock(line.lot_id, remaining, line.quantity, line_index=index)
        claimed[line.lot_id] = already + line.quantity


async def _create_bill(db: AsyncSession, account_id: int, bill_in: BillCreate) -> Bill:
    await _get_client(db, account_id, bill_in.client_id)

    due_date = bill_in.due_date or bill_in.bill_date + timedelta(days=settings.PAYMENT_TERM_DAYS)
    _check_dates(bill_in.bill_date, due_date)
    tax_rate = to_decimal(bill_in.tax_rate if bill_in.tax_rate is not None else settings.DEFAULT_TAX_RATE)

    # 1. 锁定所有涉及的批次，全部检查通过前不做任何写入
    lots = await inventory_ledger.lock_lots(db, account_id, [line.lot_id for line in bill_in.items])
    _check_availability(bill_in, lots)

    # 2. 金额
    prices = [round_currency(line.selling_price) for line in bill_in.items]
    totals = compute_bill_totals(
        [(line.quantity, price) for line, price in zip(bill_in.items, prices)],
        [charge.amount for charge in bill_in.extra_charges],
        tax_rate,
    )

    # 3. 表头 + 明细 + 附加费用
    bill = Bill(
        account_id=account_id,
        client_id=bill_in.client_id,
        bill_no=await generate_bill_no(db, account_id, bill_in.bill_date),
        invoice_number=bill_in.invoice_number,
        bill_date=bill_in.bill_date,
        due_date=due_date,
        subtotal=totals.subtotal,
        tax_rate=tax_rate,
        tax=totals.tax,
        extra_charges_total=totals.extra_charges_total,
        total=totals.total,
        status=bill_in.status,
        notes=bill_in.notes)
    for line, price in zip(bill_in.items, prices):
        bill.items.append(BillItem(
            lot_id=line.lot_id,
            quantity=line.quantity,
            selling_price=price,
            total=line_total(line.quantity, price)))
    for charge in bill_in.extra_charges:
        bill.extra_charges.append(BillExtraCharge(
            name=charge.name.strip(),
            amount=round_currency(charge.amount)))
    db.add(bill)
    await db.flush()

    # 4. 占用库存
    for index, line in enumerate(bill_in.items):
        await inventory_ledger.reserve(
            db, account_id, line.lot_id, line.quantity,
            lot=lots[line.lot_id], bill=bill, line_index=index)

    return bill


async def create_bill(db: AsyncSession, account_id: int, bill_in: BillCreate) -> Bill:
    """开账单并占用库存"""
    async with transaction(db):
        bill = await _create_bill(db, account_id, bill_in)
        bill_id, bill_no = bill.id, bill.bill_no

    logger.info(f"🧾 账单已创建: {bill_no} (account={account_id}, 明细 {len(bill_in.items)} 行)")
    return await get_bill(db, account_id, bill_id)


# ===== 修改 =====

async def _load_for_update(db: AsyncSession, account_id: int, bill_id: int) -> Bill:
    bill = await load_bill(db, account_id, bill_id, for_update=True)
    if not bill:
        raise BillNotFound(bill_id)
    return bill


async def update_bill_header(
    db: AsyncSession,
    account_id: int,
    bill_id: int,
    bill_in: BillUpdate) -> Bill:
    """
    修改表头（客户、日期、发票号、状态、税率、备注）

    只有税率变化时才重算税额和合计；明细和库存占用保持不变。
    """
    data = bill_in.model_dump(exclude_unset=True)

    async with transaction(db):
        bill = await _load_for_update(db, account_id, bill_id)

        client_id = data.get("client_id")
        if client_id is not None and client_id != bill.client_id:
            await _get_client(db, account_id, client_id)
            bill.client_id = client_id

        if data.get("bill_date") is not None:
            bill.bill_date = data["bill_date"]
        if "due_date" in data:
            bill.due_date = data["due_date"]
        _check_dates(bill.bill_date, bill.due_date)

        if data.get("invoice_number") is not None:
            bill.invoice_number = data["invoice_number"]
        if "notes" in data:
            bill.notes = data["notes"]

        if data.get("status") is not None:
            bill.change_status(data["status"])

        tax_rate = data.get("tax_rate")
        if tax_rate is not None and to_decimal(tax_rate) != bill.tax_rate:
            bill.apply_tax_rate(tax_rate)

        bill.updated_at = datetime.utcnow()

    return await get_bill(db, account_id, bill_id)


async def update_bill_status(db: AsyncSession, account_id: int, bill_id: int, status: str) -> Bill:
    """due ⇄ paid；与库存占用无关"""
    async with transaction(db):
        bill = await _load_for_update(db, account_id, bill_id)
        previous = bill.status
        if bill.change_status(status):
            bill.updated_at = datetime.utcnow()
            logger.info(f"账单 {bill.bill_no} 状态: {previous} → {status}")

    return await get_bill(db, account_id, bill_id)


# ===== 删除 =====

async def delete_bill(db: AsyncSession, account_id: int, bill_id: int) -> None:
    """删除账单并释放全部库存占用"""
    async with transaction(db):
        bill = await _load_for_update(db, account_id, bill_id)
        bill_no = bill.bill_no

        lots = await inventory_ledger.lock_lots(db, account_id, [item.lot_id for item in bill.items])
        missing = sorted({item.lot_id for item in bill.items if item.lot_id not in lots})
        if missing:
            logger.error(f"❌ 账单 {bill_no} 引用的批次已不存在: {missing}，删除中止")
            raise ConsistencyError(
                f"账单 {bill_no} 引用的批次 {missing[0]} 已不存在，无法恢复库存",
                lot_id=missing[0],
                bill_id=bill_id)

        # 先释放全部占用，再删除行（同一事务）
        for item in bill.items:
            await inventory_ledger.release(
                db, account_id, item.lot_id, item.quantity,
                lot=lots[item.lot_id], bill=bill)

        # 级联删除明细和附加费用，最后删除表头
        await db.delete(bill)

    logger.info(f"🗑️ 账单已删除并恢复库存: {bill_no} (account={account_id})")
