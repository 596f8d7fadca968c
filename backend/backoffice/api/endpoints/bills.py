"""账单API - 开单、查询、修改表头、变更状态、删除"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.deps import get_db, get_current_account_id
from backoffice.models.bill import Bill
from backoffice.schemas.bill import (
    BillCreate, BillUpdate, BillStatus, BillStatusUpdate,
    BillResponse, BillSummaryResponse, BillListResponse,
    BillItemResponse, BillExtraChargeResponse, ClientSummary
)
from backoffice.services import settlement

router = APIRouter()


def build_bill_summary(bill: Bill) -> BillSummaryResponse:
    """构建账单列表项"""
    return BillSummaryResponse(
        id=bill.id,
        bill_no=bill.bill_no,
        invoice_number=bill.invoice_number,
        bill_date=bill.bill_date,
        due_date=bill.due_date,

        # 金额
        subtotal=bill.subtotal,
        tax_rate=bill.tax_rate,
        tax=bill.tax,
        extra_charges_total=bill.extra_charges_total,
        total=bill.total,

        status=bill.status,
        status_display=bill.status_display,
        notes=bill.notes,

        client_id=bill.client_id,
        client=ClientSummary.model_validate(bill.client) if bill.client else None,

        created_at=bill.created_at,
        updated_at=bill.updated_at)


def build_bill_response(bill: Bill) -> BillResponse:
    """构建账单详情（含明细和附加费用）"""
    items = []
    for bi in bill.items:
        lot = bi.lot
        item = lot.item if lot else None
        items.append(BillItemResponse(
            id=bi.id,
            lot_id=bi.lot_id,
            quantity=bi.quantity,
            selling_price=bi.selling_price,
            total=bi.total,
            item_id=item.id if item else None,
            item_name=item.name if item else "",
            item_sku=item.sku if item else "",
            item_unit=item.unit if item else None,
            batch_number=lot.batch_number if lot else None))

    return BillResponse(
        **build_bill_summary(bill).model_dump(),
        items=items,
        extra_charges=[BillExtraChargeResponse.model_validate(c) for c in bill.extra_charges])


@router.get("/", response_model=BillListResponse)
async def list_bills(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[BillStatus] = Query(None, description="状态筛选：due/paid"),
    client_id: Optional[int] = Query(None, description="客户ID"),
    search: Optional[str] = Query(None, description="搜索账单号/发票号"),
) -> Any:
    """获取账单列表（含客户信息）"""
    bills, total = await settlement.list_bills(
        db, account_id,
        status=status,
        client_id=client_id,
        search=search,
        offset=(page - 1) * limit,
        limit=limit)

    return BillListResponse(
        data=[build_bill_summary(b) for b in bills],
        total=total,
        page=page,
        limit=limit)


@router.post("/", response_model=BillResponse, status_code=201)
async def create_bill(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    bill_in: BillCreate,
) -> Any:
    """
    开账单

    所有明细的批次可用量检查通过后，表头、明细、附加费用和库存占用在同一事务中写入；
    任一批次不足则整单拒绝（409），不产生任何写入。
    """
    bill = await settlement.create_bill(db, account_id, bill_in)
    return build_bill_response(bill)


@router.get("/{bill_id}", response_model=BillResponse)
async def get_bill(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    bill_id: int,
) -> Any:
    """获取账单详情"""
    bill = await settlement.get_bill(db, account_id, bill_id)
    return build_bill_response(bill)


@router.put("/{bill_id}", response_model=BillResponse)
async def update_bill(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    bill_id: int,
    bill_in: BillUpdate,
) -> Any:
    """修改账单表头（明细不可修改）"""
    bill = await settlement.update_bill_header(db, account_id, bill_id, bill_in)
    return build_bill_response(bill)


@router.patch("/{bill_id}/status", response_model=BillResponse)
async def update_bill_status(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    bill_id: int,
    status_in: BillStatusUpdate,
) -> Any:
    """变更账单状态（due ⇄ paid）"""
    bill = await settlement.update_bill_status(db, account_id, bill_id, status_in.status)
    return build_bill_response(bill)


@router.delete("/{bill_id}")
async def delete_bill(
    *,
    db: AsyncSession = Depends(get_db),
    account_id: int = Depends(get_current_account_id),
    bill_id: int,
) -> Any:
    """删除账单并恢复库存"""
    await settlement.delete_bill(db, account_id, bill_id)
    return {"message": "账单已删除，库存已恢复"}
