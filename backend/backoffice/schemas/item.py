"""商品Schema"""
from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime


class ItemBase(BaseModel):
    """商品基础字段"""
    name: str = Field(..., min_length=1, max_length=100, description="商品名称")
    category: str = Field(..., min_length=1, max_length=50, description="分类")
    unit: Optional[str] = Field(None, max_length=20, description="计量单位")
    description: Optional[str] = Field(None, description="描述")
    cost_price: Decimal = Field(default=Decimal("0"), ge=0, description="成本价")
    selling_price: Decimal = Field(default=Decimal("0"), ge=0, description="建议售价")


class ItemCreate(ItemBase):
    """创建商品（sku 为空时自动生成）"""
    sku: Optional[str] = Field(None, max_length=50, description="SKU")


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    unit: Optional[str] = None
    description: Optional[str] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)


class ItemResponse(ItemBase):
    id: int
    sku: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ItemListResponse(BaseModel):
    data: List[ItemResponse]
    total: int
