"""账单Schema"""
from typing import Optional, List, Literal
from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import date, datetime

BillStatus = Literal["due", "paid"]


# ===== 明细 =====
class BillItemCreate(BaseModel):
    """账单明细（从哪个批次出多少货）"""
    lot_id: int = Field(..., description="库存批次ID")
    quantity: Decimal = Field(..., gt=0, max_digits=18, decimal_places=6, description="数量（支持小数）")
    selling_price: Decimal = Field(..., ge=0, description="售价")


class BillItemResponse(BaseModel):
    id: int
    lot_id: int
    quantity: Decimal
    selling_price: Decimal
    total: Decimal
    # 商品信息（经批次关联）
    item_id: Optional[int] = None
    item_name: str = ""
    item_sku: str = ""
    item_unit: Optional[str] = None
    batch_number: Optional[str] = None


# ===== 附加费用 =====
class BillExtraChargeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="费用名称，如运费")
    amount: Decimal = Field(..., ge=0, description="金额")


class BillExtraChargeResponse(BaseModel):
    id: int
    name: str
    amount: Decimal

    class Config:
        from_attributes = True


# ===== 账单 =====
class BillCreate(BaseModel):
    """创建账单"""
    client_id: int = Field(..., description="客户ID")
    invoice_number: str = Field(..., min_length=1, max_length=50, description="发票号")
    bill_date: date = Field(..., description="开单日期")
    due_date: Optional[date] = Field(None, description="到期日（为空时按默认账期计算）")
    items: List[BillItemCreate] = Field(..., min_length=1, description="明细列表")
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2, description="税率（百分比），为空使用默认税率")
    extra_charges: List[BillExtraChargeCreate] = Field(default_factory=list, description="附加费用")
    notes: Optional[str] = Field(None, description="备注")
    status: BillStatus = Field(default="due", description="状态：due/paid")


class BillUpdate(BaseModel):
    """更新账单表头（不能修改明细，修改明细需删除后重建）"""
    client_id: Optional[int] = None
    bill_date: Optional[date] = None
    due_date: Optional[date] = None
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[BillStatus] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    notes: Optional[str] = None

    class Config:
        extra = "forbid"


class BillStatusUpdate(BaseModel):
    status: BillStatus = Field(..., description="目标状态：due/paid")


class ClientSummary(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True


class BillSummaryResponse(BaseModel):
    """账单列表项（含客户信息，不含明细）"""
    id: int
    bill_no: str
    invoice_number: str
    bill_date: date
    due_date: Optional[date] = None
    subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    extra_charges_total: Decimal
    total: Decimal
    status: str
    status_display: str = ""
    notes: Optional[str] = None
    client_id: int
    client: Optional[ClientSummary] = None
    created_at: datetime
    updated_at: datetime


class BillResponse(BillSummaryResponse):
    """账单详情"""
    items: List[BillItemResponse] = []
    extra_charges: List[BillExtraChargeResponse] = []


class BillListResponse(BaseModel):
    data: List[BillSummaryResponse]
    total: int
    page: int
    limit: int
