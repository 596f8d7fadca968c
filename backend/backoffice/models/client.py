from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from backoffice.db.base import Base


class Client(Base):
    """客户 - 账单的开具对象"""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    name = Column(String(100), nullable=False, index=True, comment="客户名称")
    email = Column(String(255), comment="邮箱")
    phone = Column(String(30), comment="电话")
    address = Column(String(255), comment="地址")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # 账单只引用客户，删除账单不影响客户
    bills = relationship("Bill", back_populates="client")

    def __repr__(self):
        return f"<Client {self.id}: {self.name}>"
