"""供应商Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


class SupplierBase(BaseModel):
    """供应商基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="供应商名称")
    contact_person: Optional[str] = Field(None, max_length=50, description="联系人")
    email: Optional[str] = Field(None, max_length=255, description="邮箱")
    phone: Optional[str] = Field(None, max_length=30, description="电话")
    address: Optional[str] = Field(None, max_length=255, description="地址")
    website: Optional[str] = Field(None, max_length=255, description="网站")
    notes: Optional[str] = Field(None, description="备注")


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    notes: Optional[str] = None


class SupplierResponse(SupplierBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SupplierListResponse(BaseModel):
    data: List[SupplierResponse]
    total: int
