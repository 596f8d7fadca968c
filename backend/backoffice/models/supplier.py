from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey

from backoffice.db.base import Base


class Supplier(Base):
    """供应商 - 库存批次的来源"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False, index=True, comment="供应商名称")
    contact_person = Column(String(50), comment="联系人")
    email = Column(String(255), comment="邮箱")
    phone = Column(String(30), comment="电话")
    address = Column(String(255), comment="地址")
    website = Column(String(255), comment="网站")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Supplier {self.id}: {self.name}>"
