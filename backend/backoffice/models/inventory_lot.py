"""
库存批次模型 - 每次进货一个批次，独立追踪可用数量
- quantity：批次入库总量
- available_quantity：未被账单占用的剩余数量
- 不变式：0 <= available_quantity <= quantity

数量使用 Quantity 列类型（Numeric(18, 6)，SQLite 上按十进制字符串保存），
保留调用方给出的精度，不做隐式取整。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Date, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship

from backoffice.db.base import Base
from backoffice.db.types import Quantity

QUANTITY = Quantity()


class InventoryLot(Base):
    """库存批次"""
    __tablename__ = "inventory_lots"
    __table_args__ = (
        CheckConstraint("CAST(available_quantity AS NUMERIC) >= 0", name="ck_lot_available_non_negative"),
        CheckConstraint(
            "CAST(available_quantity AS NUMERIC) <= CAST(quantity AS NUMERIC)",
            name="ck_lot_available_le_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    # 关联商品和供应商
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), index=True, comment="来源供应商")

    # 批次信息
    batch_number = Column(String(50), index=True, comment="批次号")
    location = Column(String(100), comment="存放位置")
    purchase_date = Column(Date, comment="进货日期")
    expiry_date = Column(Date, comment="过期日期")
    notes = Column(Text, comment="备注")

    # === 数量 ===
    quantity = Column(QUANTITY, nullable=False, comment="入库总量")
    available_quantity = Column(QUANTITY, nullable=False, comment="可用数量（未被账单占用）")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    item = relationship("Item", foreign_keys=[item_id])
    supplier = relationship("Supplier", foreign_keys=[supplier_id])

    def __repr__(self):
        return f"<InventoryLot {self.id}: {self.available_quantity}/{self.quantity}>"

    @property
    def reserved_quantity(self) -> Decimal:
        """已被账单占用的数量"""
        return (self.quantity or Decimal("0")) - (self.available_quantity or Decimal("0"))

    @property
    def is_depleted(self) -> bool:
        return (self.available_quantity or Decimal("0")) <= Decimal("0")


class InventoryFlow(Base):
    """库存流水 - 记录批次可用数量的每次变动"""
    __tablename__ = "inventory_flows"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    lot_id = Column(Integer, ForeignKey("inventory_lots.id"), nullable=False, index=True)

    # 关联账单（不设外键：账单删除后流水仍保留）
    bill_id = Column(Integer, index=True, comment="账单ID")
    bill_no = Column(String(50), comment="账单号快照")

    # 流水类型
    # intake: 新批次入库
    # restock: 批次追加入库
    # reserve: 账单占用
    # release: 账单删除后释放
    flow_type = Column(String(20), nullable=False, comment="流水类型")

    # 可用数量变动（正数增加，负数减少）
    quantity_change = Column(QUANTITY, nullable=False, comment="变动数量")
    available_before = Column(QUANTITY, nullable=False, comment="变动前可用数量")
    available_after = Column(QUANTITY, nullable=False, comment="变动后可用数量")

    reason = Column(String(200), comment="变动原因")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    lot = relationship("InventoryLot", foreign_keys=[lot_id])

    def __repr__(self):
        return f"<InventoryFlow lot:{self.lot_id} {self.flow_type} {self.quantity_change}>"

    @property
    def type_display(self) -> str:
        """类型显示名称"""
        type_map = {
            "intake": "入库",
            "restock": "追加入库",
            "reserve": "占用",
            "release": "释放",
        }
        return type_map.get(self.flow_type, self.flow_type)
