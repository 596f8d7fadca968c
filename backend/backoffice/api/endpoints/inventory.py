"""库存批次API - 进货入库、追加入库、流水、占用对账"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import Numeric, cast, select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.deps import get_db, get_current_account_id
from backoffice.core.exceptions import LotNotFound
from backoffice.db.session import transaction
from backoffice.models.inventory_lot import InventoryLot, InventoryFlow
from backoffice.models.item import Item
from backoffice.schemas.inventory import (
    InventoryLotCreate, RestockRequest,
    InventoryLotResponse, InventoryLotListResponse,
    InventoryFlowResponse,
    ReservationAuditResponse, ReservationDriftResponse
)
from backoffice.services import inventory_ledger

router = APIRouter()


def build_lot_response(lot: InventoryLot) -> InventoryLotResponse:
    """构建批次响应"""
    return InventoryLotResponse(
        id=lot.id,
        item_id=lot.item_id,
        supplier_id=lot.supplier_id,
        batch_number=lot.batch_number,

        # 数量
        quantity=lot.quantity,
        available_quantity=lot.available_quantity,
        reserved_quantity=lot.reserved_quantity,
        is_depleted=lot.is_depleted,

        purchase_date=lot.purchase_date,
        expiry_date=lot.expiry_date,
        location=lot.location,
        notes=lot.notes,

        # 关联信息
        item_name=lot.item.name if lot.item else "",
        item_sku=lot.item.sku if lot.item else "",
        item_unit=lot.item.unit if lot.item else None,
        supplier_name=lot.supplier.name if lot.supplier else "",

        created_at=lot.created_at,
        updated_at=lot.updated_at)


async def load_lot(db: AsyncSession, account_id: int, lot_id: int) -> InventoryLot:
    result = await db.execute(
        select(InventoryLot)
        .options(selectinload(InventoryLot.item), selectinload(InventoryLot.supplier))
        .where(InventoryLot.id == lot_id, InventoryLot.account_id == account_id)
        .execution_options(populate_existing=True)
    )
    lot = result.scalar_one_or_none()
    if not lot:
        raise LotNotFound(lot_id)
    return lot


@router.get("/", response_model=InventoryLotListResponse)
async def list_lots(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    item_id: Optional[int] = Query(None, description="商品ID"),
    supplier_id: Optional[int] = Query(None, description="供应商ID"),
    include_depleted: bool = Query(True, description="是否包含可用数量为0的批次"),
    search: Optional[str] = Query(None, description="搜索商品名/SKU/批次号"),
) -> Any:
    """获取批次列表"""
    query = select(InventoryLot).options(
        selectinload(InventoryLot.item),
        selectinload(InventoryLot.supplier)
    ).where(InventoryLot.account_id == account_id)

    if item_id:
        query = query.where(InventoryLot.item_id == item_id)
    if supplier_id:
        query = query.where(InventoryLot.supplier_id == supplier_id)
    if not include_depleted:
        query = query.where(cast(InventoryLot.available_quantity, Numeric) > 0)
    if search:
        query = query.join(Item, InventoryLot.item_id == Item.id).where(or_(
            Item.name.contains(search),
            Item.sku.contains(search),
            InventoryLot.batch_number.contains(search),
        ))

    result = await db.execute(query.order_by(InventoryLot.created_at.desc(), InventoryLot.id.desc()))
    lots = result.scalars().all()

    return InventoryLotListResponse(data=[build_lot_response(lot) for lot in lots], total=len(lots))


@router.post("/", response_model=InventoryLotResponse, status_code=201)
async def receive_stock(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    lot_in: InventoryLotCreate,
) -> Any:
    """进货入库（新建批次）"""
    async with transaction(db):
        lot = await inventory_ledger.receive_stock(db, account_id, lot_in)
        lot_id = lot.id

    return build_lot_response(await load_lot(db, account_id, lot_id))


@router.get("/audit", response_model=ReservationAuditResponse)
async def audit_reservations(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
) -> Any:
    """占用对账：可用数量应等于 入库总量 - 账单占用"""
    report = await inventory_ledger.audit_reservations(db, account_id)
    return ReservationAuditResponse(
        checked=report.checked,
        drifted=[
            ReservationDriftResponse(
                lot_id=d.lot_id,
                quantity=d.quantity,
                reserved_by_bills=d.reserved_by_bills,
                expected_available=d.expected_available,
                available_quantity=d.available_quantity)
            for d in report.drifted
        ])


@router.get("/{lot_id}", response_model=InventoryLotResponse)
async def get_lot(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    lot_id: int,
) -> Any:
    """获取批次详情（含可用数量）"""
    return build_lot_response(await load_lot(db, account_id, lot_id))


@router.post("/{lot_id}/restock", response_model=InventoryLotResponse)
async def restock_lot(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    lot_id: int,
    restock_in: RestockRequest,
) -> Any:
    """批次追加入库"""
    async with transaction(db):
        await inventory_ledger.restock(db, account_id, lot_id, restock_in.quantity, reason=restock_in.reason)

    return build_lot_response(await load_lot(db, account_id, lot_id))


@router.get("/{lot_id}/flows", response_model=List[InventoryFlowResponse])
async def list_lot_flows(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    lot_id: int,
) -> Any:
    """获取批次流水"""
    await load_lot(db, account_id, lot_id)

    result = await db.execute(
        select(InventoryFlow)
        .where(InventoryFlow.lot_id == lot_id, InventoryFlow.account_id == account_id)
        .order_by(InventoryFlow.id)
    )
    flows = result.scalars().all()

    data = []
    for f in flows:
        resp = InventoryFlowResponse.model_validate(f)
        resp.type_display = f.type_display
        data.append(resp)
    return data
