"""
库存账本 - 批次可用数量的唯一修改入口
- 批次加锁（FOR UPDATE，按ID升序，避免两张账单互相等待）
- 占用 / 释放 / 查询可用数量
- 进货入库、追加入库
- 占用对账

这里的函数都不提交事务，由调用方（结算引擎或入库接口）决定提交或回滚。
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import (
    InsufficientStock, ItemNotFound, LotNotFound, SupplierNotFound, ValidationError
)
from backoffice.core.money import ZERO, to_decimal
from backoffice.models.bill import Bill
from backoffice.models.bill_item import BillItem
from backoffice.models.inventory_lot import InventoryFlow, InventoryLot
from backoffice.models.item import Item
from backoffice.models.supplier import Supplier
from backoffice.schemas.inventory import InventoryLotCreate

logger = logging.getLogger(__name__)


def _record_flow(
    db: AsyncSession,
    lot: InventoryLot,
    flow_type: str,
    before: Decimal,
    after: Decimal,
    bill: Optional[Bill] = None,
    reason: Optional[str] = None) -> InventoryFlow:
    """记录库存流水"""
    flow = InventoryFlow(
        account_id=lot.account_id,
        lot_id=lot.id,
        bill_id=bill.id if bill is not None else None,
        bill_no=bill.bill_no if bill is not None else None,
        flow_type=flow_type,
        quantity_change=after - before,
        available_before=before,
        available_after=after,
        reason=reason)
    db.add(flow)
    return flow


async def lock_lots(
    db: AsyncSession,
    account_id: int,
    lot_ids: Iterable[int]) -> Dict[int, InventoryLot]:
    """
    锁定批次行并返回 {lot_id: lot}

    不属于该账户或不存在的批次不会出现在结果中，由调用方决定如何报错。
    """
    ids = sorted(set(lot_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(InventoryLot)
        .where(InventoryLot.account_id == account_id, InventoryLot.id.in_(ids))
        .order_by(InventoryLot.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {lot.id: lot for lot in result.scalars().all()}


async def _locked_lot(db: AsyncSession, account_id: int, lot_id: int) -> InventoryLot:
    lot = (await lock_lots(db, account_id, [lot_id])).get(lot_id)
    if lot is None:
        raise LotNotFound(lot_id)
    return lot


async def reserve(
    db: AsyncSession,
    account_id: int,
    lot_id: int,
    quantity,
    *,
    lot: Optional[InventoryLot] = None,
    bill: Optional[Bill] = None,
    line_index: Optional[int] = None) -> InventoryLot:
    """占用库存（开账单时调用）

    Args:
        lot: 已由 lock_lots 锁定的批次（为空时在这里加锁读取）
        bill: 触发占用的账单，用于流水记录
        line_index: 账单明细序号，用于错误定位
    """
    quantity = to_decimal(quantity)
    if quantity <= ZERO:
        raise ValidationError("占用数量必须大于0", field="quantity")
    if lot is None:
        lot = await _locked_lot(db, account_id, lot_id)

    before = lot.available_quantity
    if quantity > before:
        raise InsufficientStock(lot.id, before, quantity, line_index=line_index)

    lot.available_quantity = before - quantity
    _record_flow(
        db, lot, "reserve", before, lot.available_quantity,
        bill=bill,
        reason=f"账单占用 {bill.bill_no}" if bill is not None else f"占用 {quantity}")
    return lot


async def release(
    db: AsyncSession,
    account_id: int,
    lot_id: int,
    quantity,
    *,
    lot: Optional[InventoryLot] = None,
    bill: Optional[Bill] = None) -> InventoryLot:
    """释放占用（删除账单时调用）

    可用数量最多恢复到入库总量；超出部分说明数据已不一致，只记日志不报错。
    """
    quantity = to_decimal(quantity)
    if quantity <= ZERO:
        raise ValidationError("释放数量必须大于0", field="quantity")
    if lot is None:
        lot = await _locked_lot(db, account_id, lot_id)

    before = lot.available_quantity
    after = before + quantity
    if after > lot.quantity:
        logger.warning(
            f"批次 {lot.id} 释放后超出入库总量，已截断：可用 {before} + 释放 {quantity} > 总量 {lot.quantity}"
        )
        after = lot.quantity

    lot.available_quantity = after
    _record_flow(
        db, lot, "release", before, after,
        bill=bill,
        reason=f"删除账单释放 {bill.bill_no}" if bill is not None else f"释放 {quantity}")
    return lot


async def lookup_available(db: AsyncSession, account_id: int, lot_id: int) -> Decimal:
    """查询批次可用数量（只读）"""
    result = await db.execute(
        select(InventoryLot.available_quantity).where(
            InventoryLot.id == lot_id,
            InventoryLot.account_id == account_id,
        )
    )
    available = result.scalar_one_or_none()
    if available is None:
        raise LotNotFound(lot_id)
    return available


async def receive_stock(
    db: AsyncSession,
    account_id: int,
    lot_in: InventoryLotCreate) -> InventoryLot:
    """进货入库：新建批次，可用数量 = 入库数量"""
    item = await db.get(Item, lot_in.item_id)
    if not item or item.account_id != account_id:
        raise ItemNotFound(lot_in.item_id)

    if lot_in.supplier_id is not None:
        supplier = await db.get(Supplier, lot_in.supplier_id)
        if not supplier or supplier.account_id != account_id:
            raise SupplierNotFound(lot_in.supplier_id)

    lot = InventoryLot(
        account_id=account_id,
        item_id=lot_in.item_id,
        supplier_id=lot_in.supplier_id,
        batch_number=lot_in.batch_number,
        location=lot_in.location,
        purchase_date=lot_in.purchase_date,
        expiry_date=lot_in.expiry_date,
        notes=lot_in.notes,
        quantity=lot_in.quantity,
        available_quantity=lot_in.quantity)
    db.add(lot)
    await db.flush()

    _record_flow(db, lot, "intake", ZERO, lot.available_quantity, reason=f"进货入库 {item.name}")
    logger.info(f"📦 批次入库: lot={lot.id} item={item.sku} qty={lot.quantity}")
    return lot


async def restock(
    db: AsyncSession,
    account_id: int,
    lot_id: int,
    quantity,
    reason: Optional[str] = None) -> InventoryLot:
    """追加入库：总量和可用数量同时增加"""
    quantity = to_decimal(quantity)
    if quantity <= ZERO:
        raise ValidationError("追加数量必须大于0", field="quantity")
    lot = await _locked_lot(db, account_id, lot_id)

    before = lot.available_quantity
    lot.quantity = lot.quantity + quantity
    lot.available_quantity = before + quantity
    _record_flow(db, lot, "restock", before, lot.available_quantity, reason=reason or f"追加入库 {quantity}")
    return lot


# ===== 占用对账 =====

@dataclass
class ReservationDrift:
    lot_id: int
    quantity: Decimal
    reserved_by_bills: Decimal
    expected_available: Decimal
    available_quantity: Decimal


@dataclass
class AuditReport:
    checked: int
    drifted: List[ReservationDrift]


async def audit_reservations(
    db: AsyncSession,
    account_id: Optional[int] = None) -> AuditReport:
    """
    对账：可用数量应等于 入库总量 - 现存账单明细占用之和

    返回检查的批次数和所有不一致的批次。按 Decimal 在 Python 端汇总，避免数据库浮点累加误差。
    """
    lot_query = select(InventoryLot).order_by(InventoryLot.id)
    item_query = select(BillItem.lot_id, BillItem.quantity).join(Bill, BillItem.bill_id == Bill.id)
    if account_id is not None:
        lot_query = lot_query.where(InventoryLot.account_id == account_id)
        item_query = item_query.where(Bill.account_id == account_id)

    reserved: Dict[int, Decimal] = {}
    for lot_id, quantity in (await db.execute(item_query)).all():
        reserved[lot_id] = reserved.get(lot_id, ZERO) + to_decimal(quantity)

    drifted = []
    lots = (await db.execute(lot_query)).scalars().all()
    for lot in lots:
        used = reserved.get(lot.id, ZERO)
        expected = lot.quantity - used
        if expected != lot.available_quantity:
            drifted.append(ReservationDrift(
                lot_id=lot.id,
                quantity=lot.quantity,
                reserved_by_bills=used,
                expected_available=expected,
                available_quantity=lot.available_quantity))
    return AuditReport(checked=len(lots), drifted=drifted)

