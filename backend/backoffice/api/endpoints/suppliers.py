"""供应商管理API"""

from typing import Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.deps import get_db, get_current_account_id
from backoffice.core.exceptions import ResourceInUse, SupplierNotFound
from backoffice.models.inventory_lot import InventoryLot
from backoffice.models.supplier import Supplier
from backoffice.schemas.supplier import (
    SupplierCreate, SupplierUpdate, SupplierResponse, SupplierListResponse
)

router = APIRouter()


async def get_supplier_or_404(db: AsyncSession, account_id: int, supplier_id: int) -> Supplier:
    supplier = await db.get(Supplier, supplier_id)
    if not supplier or supplier.account_id != account_id:
        raise SupplierNotFound(supplier_id)
    return supplier


@router.get("/", response_model=SupplierListResponse)
async def list_suppliers(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    search: Optional[str] = Query(None, description="搜索名称/联系人"),
) -> Any:
    """获取供应商列表"""
    query = select(Supplier).where(Supplier.account_id == account_id)
    if search:
        query = query.where(or_(
            Supplier.name.contains(search),
            Supplier.contact_person.contains(search),
        ))

    result = await db.execute(query.order_by(Supplier.name, Supplier.id))
    suppliers = result.scalars().all()

    return SupplierListResponse(
        data=[SupplierResponse.model_validate(s) for s in suppliers],
        total=len(suppliers))


@router.post("/", response_model=SupplierResponse, status_code=201)
async def create_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    supplier_in: SupplierCreate,
) -> Any:
    """创建供应商"""
    supplier = Supplier(**supplier_in.model_dump(), account_id=account_id)
    db.add(supplier)
    await db.commit()
    await db.refresh(supplier)
    return supplier


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    supplier_id: int,
) -> Any:
    return await get_supplier_or_404(db, account_id, supplier_id)


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    supplier_id: int,
    supplier_in: SupplierUpdate,
) -> Any:
    """更新供应商"""
    supplier = await get_supplier_or_404(db, account_id, supplier_id)

    update_data = supplier_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(supplier, field, value)
    supplier.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(supplier)
    return supplier


@router.delete("/{supplier_id}")
async def delete_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    supplier_id: int,
) -> Any:
    """删除供应商（仍有批次引用时拒绝）"""
    supplier = await get_supplier_or_404(db, account_id, supplier_id)

    lots_count = (await db.execute(
        select(func.count(InventoryLot.id)).where(InventoryLot.supplier_id == supplier_id)
    )).scalar() or 0

    if lots_count > 0:
        raise ResourceInUse(
            "supplier", supplier_id,
            f"该供应商已被 {lots_count} 个库存批次引用，无法删除")

    await db.delete(supplier)
    await db.commit()
    return {"message": "删除成功"}
