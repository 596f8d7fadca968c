"""
账单模型 - 表头 + 明细 + 附加费用

金额关系：
- 明细金额 = 数量 × 单价（取整到分）
- 小计 = Σ 明细金额
- 税额 = 小计 × 税率 / 100（取整到分）
- 合计 = 小计 + 税额 + 附加费用合计

状态只有 due（待收款）和 paid（已收款），与库存占用无关：
只要账单存在，明细数量就一直占用对应批次。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, Numeric, Index
from sqlalchemy.orm import relationship

from backoffice.db.base import Base
from backoffice.core.money import to_decimal, totals_from_parts
from backoffice.core.exceptions import InvalidStatusTransition

# 合法的状态变更
BILL_STATUS_TRANSITIONS = {
    "due": {"paid"},
    "paid": {"due"},
}


class Bill(Base):
    """账单"""
    __tablename__ = "bills"
    __table_args__ = (
        Index("ix_bills_account_created", "account_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    # 账单号（自动生成，格式：BL + 日期 + 序号，如 BL20250604001）
    bill_no = Column(String(50), nullable=False, index=True, comment="账单号")
    invoice_number = Column(String(50), nullable=False, index=True, comment="发票号")

    bill_date = Column(Date, nullable=False, comment="开单日期")
    due_date = Column(Date, comment="到期日")

    # 汇总金额
    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="小计")
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"), comment="税率（百分比）")
    tax = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="税额")
    extra_charges_total = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="附加费用合计")
    total = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="合计")

    status = Column(String(20), nullable=False, default="due", index=True, comment="状态")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 关系
    client = relationship("Client", back_populates="bills")
    items = relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.id",
    )
    extra_charges = relationship(
        "BillExtraCharge",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillExtraCharge.id",
    )

    def __repr__(self):
        return f"<Bill {self.bill_no}: {self.total} ({self.status})>"

    @property
    def status_display(self) -> str:
        status_map = {
            "due": "待收款",
            "paid": "已收款",
        }
        return status_map.get(self.status, self.status)

    def apply_tax_rate(self, tax_rate) -> None:
        """按新税率重算税额和合计（不涉及明细）"""
        totals = totals_from_parts(self.subtotal, self.extra_charges_total, tax_rate)
        self.tax_rate = to_decimal(tax_rate)
        self.tax = totals.tax
        self.total = totals.total

    def change_status(self, target: str) -> bool:
        """变更状态，返回是否发生变化；非法变更抛 InvalidStatusTransition"""
        if target == self.status:
            return False
        if target not in BILL_STATUS_TRANSITIONS.get(self.status, set()):
            raise InvalidStatusTransition(self.status, target)
        self.status = target
        return True
