"""商品管理API"""

from typing import Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.deps import get_db, get_current_account_id
from backoffice.core.exceptions import ItemNotFound, ValidationError
from backoffice.core.money import round_currency
from backoffice.models.item import Item
from backoffice.schemas.item import (
    ItemCreate, ItemUpdate, ItemResponse, ItemListResponse
)

router = APIRouter()

SKU_PREFIX = "SKU-"


async def sku_exists(db: AsyncSession, account_id: int, sku: str) -> bool:
    result = await db.execute(
        select(func.count(Item.id)).where(Item.account_id == account_id, Item.sku == sku)
    )
    return (result.scalar() or 0) > 0


async def generate_sku(db: AsyncSession, account_id: int) -> str:
    """生成SKU：SKU- + 6位序号"""
    result = await db.execute(
        select(func.count(Item.id)).where(
            Item.account_id == account_id,
            Item.sku.like(f"{SKU_PREFIX}%"),
        )
    )
    num = (result.scalar() or 0) + 1

    # 手工填写过同格式的 SKU 时顺延
    while await sku_exists(db, account_id, f"{SKU_PREFIX}{num:06d}"):
        num += 1
    return f"{SKU_PREFIX}{num:06d}"


async def get_item_or_404(db: AsyncSession, account_id: int, item_id: int) -> Item:
    item = await db.get(Item, item_id)
    if not item or item.account_id != account_id:
        raise ItemNotFound(item_id)
    return item


@router.get("/", response_model=ItemListResponse)
async def list_items(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    category: Optional[str] = Query(None, description="分类筛选"),
    search: Optional[str] = Query(None, description="搜索名称/SKU"),
) -> Any:
    """获取商品列表"""
    query = select(Item).where(Item.account_id == account_id)
    if category:
        query = query.where(Item.category == category)
    if search:
        query = query.where(or_(Item.name.contains(search), Item.sku.contains(search)))

    result = await db.execute(query.order_by(Item.name, Item.id))
    items = result.scalars().all()

    return ItemListResponse(
        data=[ItemResponse.model_validate(i) for i in items],
        total=len(items))


@router.post("/", response_model=ItemResponse, status_code=201)
async def create_item(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    item_in: ItemCreate,
) -> Any:
    """创建商品（未填写 SKU 时自动生成）"""
    data = item_in.model_dump()
    sku = (data.pop("sku") or "").strip()
    if sku:
        if await sku_exists(db, account_id, sku):
            raise ValidationError(f"SKU '{sku}' 已存在", field="sku")
    else:
        sku = await generate_sku(db, account_id)

    data["cost_price"] = round_currency(data["cost_price"])
    data["selling_price"] = round_currency(data["selling_price"])

    item = Item(**data, sku=sku, account_id=account_id)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    item_id: int,
) -> Any:
    return await get_item_or_404(db, account_id, item_id)


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    item_id: int,
    item_in: ItemUpdate,
) -> Any:
    """更新商品（SKU 不可修改）"""
    item = await get_item_or_404(db, account_id, item_id)

    update_data = item_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if field in ("name", "category", "cost_price", "selling_price"):
            if value is None:
                continue
            if field.endswith("_price"):
                value = round_currency(value)
        setattr(item, field, value)
    item.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(item)
    return item
