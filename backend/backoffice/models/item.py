"""
商品目录 - 只描述商品本身，不含库存
库存数量记录在 InventoryLot（每次进货一个批次）
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Numeric, UniqueConstraint

from backoffice.db.base import Base


class Item(Base):
    """商品"""
    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("account_id", "sku", name="uq_item_account_sku"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False, index=True, comment="商品名称")
    sku = Column(String(50), nullable=False, comment="SKU（未填写时自动生成）")
    category = Column(String(50), nullable=False, comment="分类")
    unit = Column(String(20), comment="计量单位，如 pcs、kg")
    description = Column(Text, comment="描述")

    cost_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="成本价")
    selling_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="建议售价")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Item {self.sku}: {self.name}>"
