"""客户Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


class ClientBase(BaseModel):
    """客户基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="客户名称")
    email: Optional[str] = Field(None, max_length=255, description="邮箱")
    phone: Optional[str] = Field(None, max_length=30, description="电话")
    address: Optional[str] = Field(None, max_length=255, description="地址")


class ClientCreate(ClientBase):
    """创建客户"""
    pass


class ClientUpdate(BaseModel):
    """更新客户联系信息"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)


class ClientResponse(ClientBase):
    """客户响应"""
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    data: List[ClientResponse]
    total: int
