from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from backoffice.db.base import Base


class Account(Base):
    """账户 - 所有业务数据的归属方（由认证层解析得到）"""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="账户名称")
    email = Column(String(255), unique=True, index=True, comment="登录邮箱")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Account {self.id}: {self.name}>"
