"""依赖注入 - 数据库会话与当前账户"""
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.session import SessionLocal
from backoffice.models.account import Account


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with SessionLocal() as session:
        yield session


async def get_current_account_id(
    db: AsyncSession = Depends(get_db),
    x_account_id: Optional[str] = Header(None, alias="X-Account-Id"),
) -> int:
    """
    解析当前账户

    会话/认证由外部完成，这里只接收其解析出的账户ID（X-Account-Id 请求头），
    所有业务查询都以该ID限定范围。
    """
    if not x_account_id:
        raise HTTPException(status_code=401, detail="未登录")
    try:
        account_id = int(x_account_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="账户标识无效")

    account = await db.get(Account, account_id)
    if not account:
        raise HTTPException(status_code=401, detail="账户不存在")
    return account_id
