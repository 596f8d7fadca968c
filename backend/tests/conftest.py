"""
测试夹具

每个测试使用 tmp_path 下独立的 SQLite 文件库，引擎配置与生产一致（BEGIN IMMEDIATE）。
"""
import os
import tempfile

# 必须在导入 backoffice 之前设置
os.environ.setdefault("RESERVATION_AUDIT_ENABLED", "false")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="backoffice-logs-"))
os.environ.setdefault("SQLITE_BUSY_TIMEOUT", "30")

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from backoffice.core.deps import get_db
from backoffice.db.base import Base
from backoffice.db.session import build_engine, build_sessionmaker
from backoffice.main import app
from backoffice.models import Account, Client, Item, InventoryLot
from backoffice.schemas.bill import BillCreate

BILL_DATE = date(2025, 6, 4)


@pytest.fixture
async def engine(tmp_path):
    """独立的文件库引擎"""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def seed(session_factory):
    """
    基础数据：
    - 账户 acme：客户 1 个，商品 1 个，批次 lot_a=10、lot_b=5、lot_c=2
    - 账户 other：客户和批次各 1 个（用于跨账户隔离）
    """
    async with session_factory() as db:
        acme = Account(name="Acme", email="acme@example.com")
        other = Account(name="Other", email="other@example.com")
        db.add_all([acme, other])
        await db.flush()

        client = Client(account_id=acme.id, name="Globex", email="ap@globex.example")
        other_client = Client(account_id=other.id, name="Initech")
        item = Item(
            account_id=acme.id, name="Widget", sku="SKU-000001", category="parts",
            unit="pcs", cost_price=Decimal("4.00"), selling_price=Decimal("10.00"))
        other_item = Item(
            account_id=other.id, name="Stapler", sku="SKU-000001", category="office",
            cost_price=Decimal("1.00"), selling_price=Decimal("2.00"))
        db.add_all([client, other_client, item, other_item])
        await db.flush()

        def lot(account_id, item_id, qty, batch):
            return InventoryLot(
                account_id=account_id, item_id=item_id, batch_number=batch,
                purchase_date=BILL_DATE, quantity=Decimal(qty), available_quantity=Decimal(qty))

        lot_a = lot(acme.id, item.id, "10", "A")
        lot_b = lot(acme.id, item.id, "5", "B")
        lot_c = lot(acme.id, item.id, "2", "C")
        other_lot = lot(other.id, other_item.id, "8", "X")
        db.add_all([lot_a, lot_b, lot_c, other_lot])
        await db.commit()

        return SimpleNamespace(
            account_id=acme.id,
            other_account_id=other.id,
            client_id=client.id,
            other_client_id=other_client.id,
            item_id=item.id,
            lot_a=lot_a.id,
            lot_b=lot_b.id,
            lot_c=lot_c.id,
            other_lot=other_lot.id,
        )


@pytest.fixture
async def db(session_factory, seed):
    """服务层测试用会话（在 seed 提交之后打开）"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_bill_in(seed):
    """构造 BillCreate：lines 为 (lot_id, 数量, 单价) 列表"""
    def _make(lines, client_id=None, **kwargs):
        payload = {
            "client_id": client_id or seed.client_id,
            "invoice_number": "INV-1",
            "bill_date": BILL_DATE,
            "items": [
                {"lot_id": lot_id, "quantity": str(qty), "selling_price": str(price)}
                for lot_id, qty, price in lines
            ],
        }
        payload.update(kwargs)
        return BillCreate.model_validate(payload)
    return _make


@pytest.fixture
async def client(session_factory, seed):
    """HTTP 客户端，默认以 acme 账户身份请求"""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Account-Id": str(seed.account_id)},
    ) as http_client:
        yield http_client
    app.dependency_overrides.clear()
