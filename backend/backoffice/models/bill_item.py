from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from backoffice.db.base import Base
from backoffice.models.inventory_lot import QUANTITY


class BillItem(Base):
    """账单明细 - 从某个库存批次出货"""
    __tablename__ = "bill_items"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)

    # 只引用批次，删除账单时释放占用，不删除批次
    lot_id = Column(Integer, ForeignKey("inventory_lots.id"), nullable=False, index=True)

    quantity = Column(QUANTITY, nullable=False, comment="数量")
    selling_price = Column(Numeric(12, 2), nullable=False, comment="售价")
    total = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="金额 = 数量 × 售价")

    created_at = Column(DateTime, default=datetime.utcnow)

    bill = relationship("Bill", back_populates="items")
    lot = relationship("InventoryLot", foreign_keys=[lot_id])

    def __repr__(self):
        return f"<BillItem bill:{self.bill_id} lot:{self.lot_id} qty:{self.quantity}>"


class BillExtraCharge(Base):
    """附加费用（运费等固定金额）"""
    __tablename__ = "bill_extra_charges"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("bills.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False, comment="费用名称")
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="金额")

    bill = relationship("Bill", back_populates="extra_charges")

    def __repr__(self):
        return f"<BillExtraCharge {self.name}: {self.amount}>"
