import asyncio
import logging
from sqlalchemy import select

from backoffice.db.session import SessionLocal
from backoffice.db.init_db import ensure_tables_exist
from backoffice.models.account import Account

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"


async def init_db() -> None:
    """
    初始化数据库：建表并创建演示账户
    """
    try:
        logger.info("创建数据库表...")
        await ensure_tables_exist()
        logger.info("数据库表创建成功")

        async with SessionLocal() as db:
            result = await db.execute(select(Account).where(Account.email == DEMO_EMAIL))
            account = result.scalars().first()

            if not account:
                logger.info("创建演示账户...")
                account = Account(name="Demo", email=DEMO_EMAIL)
                db.add(account)
                await db.commit()
                await db.refresh(account)
                logger.info(f"演示账户创建成功，请求头使用 X-Account-Id: {account.id}")
            else:
                logger.info(f"演示账户已存在 (X-Account-Id: {account.id})")

        logger.info("数据库初始化完成")
    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise

if __name__ == "__main__":
    asyncio.run(init_db())
