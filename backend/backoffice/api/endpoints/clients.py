"""客户管理API"""

from typing import Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.deps import get_db, get_current_account_id
from backoffice.core.exceptions import ClientNotFound, ResourceInUse
from backoffice.models.bill import Bill
from backoffice.models.client import Client
from backoffice.schemas.client import (
    ClientCreate, ClientUpdate, ClientResponse, ClientListResponse
)

router = APIRouter()


async def get_client_or_404(db: AsyncSession, account_id: int, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if not client or client.account_id != account_id:
        raise ClientNotFound(client_id)
    return client


@router.get("/", response_model=ClientListResponse)
async def list_clients(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    search: Optional[str] = Query(None, description="搜索名称/邮箱/电话"),
) -> Any:
    """获取客户列表"""
    query = select(Client).where(Client.account_id == account_id)
    if search:
        query = query.where(or_(
            Client.name.contains(search),
            Client.email.contains(search),
            Client.phone.contains(search),
        ))

    result = await db.execute(query.order_by(Client.name, Client.id))
    clients = result.scalars().all()

    return ClientListResponse(
        data=[ClientResponse.model_validate(c) for c in clients],
        total=len(clients))


@router.post("/", response_model=ClientResponse, status_code=201)
async def create_client(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    client_in: ClientCreate,
) -> Any:
    """创建客户"""
    client = Client(**client_in.model_dump(), account_id=account_id)
    db.add(client)
    await db.commit()
    await db.refresh(client)
    return client


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    client_id: int,
) -> Any:
    """获取客户详情"""
    return await get_client_or_404(db, account_id, client_id)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    client_id: int,
    client_in: ClientUpdate,
) -> Any:
    """更新客户联系信息"""
    client = await get_client_or_404(db, account_id, client_id)

    update_data = client_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(client, field, value)
    client.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(client)
    return client


@router.delete("/{client_id}")
async def delete_client(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    client_id: int,
) -> Any:
    """删除客户（仍有账单引用时拒绝）"""
    client = await get_client_or_404(db, account_id, client_id)

    bills_count = (await db.execute(
        select(func.count(Bill.id)).where(Bill.client_id == client_id)
    )).scalar() or 0

    if bills_count > 0:
        raise ResourceInUse(
            "client", client_id,
            f"该客户已被 {bills_count} 张账单引用，无法删除")

    await db.delete(client)
    await db.commit()
    return {"message": "删除成功"}
