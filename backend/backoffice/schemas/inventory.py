"""库存批次Schema"""
from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime


class InventoryLotCreate(BaseModel):
    """进货入库（创建批次）"""
    item_id: int = Field(..., description="商品ID")
    supplier_id: Optional[int] = Field(None, description="供应商ID")
    batch_number: Optional[str] = Field(None, max_length=50, description="批次号")
    quantity: Decimal = Field(..., ge=0, max_digits=18, decimal_places=6, description="入库数量")
    purchase_date: date = Field(..., description="进货日期")
    expiry_date: Optional[date] = Field(None, description="过期日期")
    location: Optional[str] = Field(None, max_length=100, description="存放位置")
    notes: Optional[str] = Field(None, description="备注")

    @model_validator(mode="after")
    def check_dates(self):
        if self.expiry_date and self.expiry_date < self.purchase_date:
            raise ValueError("过期日期不能早于进货日期")
        return self


class RestockRequest(BaseModel):
    """批次追加入库"""
    quantity: Decimal = Field(..., gt=0, max_digits=18, decimal_places=6, description="追加数量")
    reason: Optional[str] = Field(None, max_length=200, description="原因")


class InventoryLotResponse(BaseModel):
    id: int
    item_id: int
    supplier_id: Optional[int] = None
    batch_number: Optional[str] = None
    quantity: Decimal
    available_quantity: Decimal
    reserved_quantity: Decimal
    is_depleted: bool = False
    purchase_date: Optional[date] = None
    expiry_date: Optional[date] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    # 商品信息
    item_name: str = ""
    item_sku: str = ""
    item_unit: Optional[str] = None
    # 供应商信息
    supplier_name: str = ""
    created_at: datetime
    updated_at: datetime


class InventoryLotListResponse(BaseModel):
    data: List[InventoryLotResponse]
    total: int


class InventoryFlowResponse(BaseModel):
    id: int
    lot_id: int
    bill_id: Optional[int] = None
    bill_no: Optional[str] = None
    flow_type: str
    type_display: str = ""
    quantity_change: Decimal
    available_before: Decimal
    available_after: Decimal
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReservationDriftResponse(BaseModel):
    """对账差异：可用数量与（入库总量 - 账单占用）不一致的批次"""
    lot_id: int
    quantity: Decimal
    reserved_by_bills: Decimal
    expected_available: Decimal
    available_quantity: Decimal


class ReservationAuditResponse(BaseModel):
    checked: int
    drifted: List[ReservationDriftResponse]
