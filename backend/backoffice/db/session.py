from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from backoffice.core.config import settings


def async_database_uri(uri: str) -> str:
    """同步驱动的连接串转换为异步驱动"""
    if uri.startswith("sqlite:///"):
        return uri.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if uri.startswith("postgresql://"):
        return uri.replace("postgresql://", "postgresql+asyncpg://", 1)
    return uri


def build_engine(uri: str, echo: bool = False) -> AsyncEngine:
    """
    创建异步引擎

    SQLite 没有行锁（FOR UPDATE 会被忽略），所以每个事务都以 BEGIN IMMEDIATE 开始，
    直接拿到库级写锁，"检查可用量 → 扣减" 不会被并发请求穿插。
    """
    uri = async_database_uri(uri)
    is_sqlite = uri.startswith("sqlite")
    connect_args = {"timeout": settings.SQLITE_BUSY_TIMEOUT} if is_sqlite else {}

    new_engine = create_async_engine(uri, echo=echo, future=True, connect_args=connect_args)

    if is_sqlite:
        @event.listens_for(new_engine.sync_engine, "connect")
        def _disable_pysqlite_transaction(dbapi_connection, connection_record):
            # 由 SQLAlchemy 自己发出 BEGIN
            dbapi_connection.isolation_level = None

        @event.listens_for(new_engine.sync_engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return new_engine


def build_sessionmaker(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(settings.DATABASE_URI, echo=settings.SQL_ECHO)

SessionLocal = build_sessionmaker(engine)


@asynccontextmanager
async def transaction(db: AsyncSession):
    """
    一个工作单元：正常结束提交，任何异常回滚后原样抛出
    （不做补偿性写入，一切依赖事务回滚）
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
