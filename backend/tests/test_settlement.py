from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text, update

from backoffice.core.exceptions import (
    BillNotFound, ClientNotFound, ConsistencyError, InsufficientStock, InvalidStatusTransition,
    LotNotFound, ValidationError
)
from backoffice.models import Bill, BillExtraCharge, BillItem, InventoryFlow
from backoffice.schemas.bill import BillUpdate
from backoffice.services import settlement
from backoffice.services.inventory_ledger import lookup_available


async def available(db, seed, lot_id):
    return await lookup_available(db, seed.account_id, lot_id)


async def count_rows(db, model):
    return (await db.execute(select(func.count(model.id)))).scalar()


def snapshot(bill):
    """账单表头、明细、附加费用的全部字段"""
    header = (
        bill.id, bill.bill_no, bill.invoice_number, bill.client_id,
        bill.bill_date, bill.due_date, bill.subtotal, bill.tax_rate, bill.tax,
        bill.extra_charges_total, bill.total, bill.status, bill.notes,
        bill.created_at, bill.updated_at,
    )
    items = [(i.id, i.lot_id, i.quantity, i.selling_price, i.total) for i in bill.items]
    charges = [(c.id, c.name, c.amount) for c in bill.extra_charges]
    return header, items, charges


async def test_create_bill_computes_totals_and_reserves(db, seed, make_bill_in):
    bill_in = make_bill_in(
        [(seed.lot_a, 2, "10.00"), (seed.lot_b, 1, "5.50")],
        extra_charges=[{"name": "Shipping", "amount": "3.00"}])

    bill = await settlement.create_bill(db, seed.account_id, bill_in)

    assert bill.bill_no == "BL20250604001"
    assert bill.subtotal == Decimal("25.50")
    assert bill.tax_rate == Decimal("10")
    assert bill.tax == Decimal("2.55")
    assert bill.extra_charges_total == Decimal("3.00")
    assert bill.total == Decimal("31.05")
    assert bill.status == "due"
    assert bill.due_date == bill.bill_date + timedelta(days=30)
    assert [i.total for i in bill.items] == [Decimal("20.00"), Decimal("5.50")]
    assert [c.name for c in bill.extra_charges] == ["Shipping"]

    assert await available(db, seed, seed.lot_a) == Decimal("8")
    assert await available(db, seed, seed.lot_b) == Decimal("4")


async def test_bill_numbers_increase_per_account_and_day(db, seed, make_bill_in):
    first = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 1)]))
    second = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 1)]))
    other_day = await settlement.create_bill(
        db, seed.account_id, make_bill_in([(seed.lot_a, 1, 1)], bill_date=date(2025, 6, 5)))

    assert first.bill_no == "BL20250604001"
    assert second.bill_no == "BL20250604002"
    assert other_day.bill_no == "BL20250605001"


async def test_create_and_delete_cycles_conserve_quantity(db, seed, make_bill_in):
    for _ in range(5):
        bill = await settlement.create_bill(
            db, seed.account_id,
            make_bill_in([(seed.lot_a, "3.25", 10), (seed.lot_b, "0.000001", 10), (seed.lot_a, "1.5", 10)]))
        assert await available(db, seed, seed.lot_a) == Decimal("5.25")
        await settlement.delete_bill(db, seed.account_id, bill.id)

    assert await available(db, seed, seed.lot_a) == Decimal("10")
    assert await available(db, seed, seed.lot_b) == Decimal("5")
    assert await count_rows(db, Bill) == 0
    assert await count_rows(db, BillItem) == 0


async def test_failed_line_rejects_whole_bill(db, seed, make_bill_in):
    bill_in = make_bill_in([(seed.lot_a, 1, 10), (seed.lot_b, 1, 10), (seed.lot_c, 3, 10)])

    with pytest.raises(InsufficientStock) as exc_info:
        await settlement.create_bill(db, seed.account_id, bill_in)

    assert exc_info.value.lot_id == seed.lot_c
    assert exc_info.value.line_index == 2
    assert exc_info.value.available == Decimal("2")
    assert exc_info.value.requested == Decimal("3")

    assert await available(db, seed, seed.lot_a) == Decimal("10")
    assert await available(db, seed, seed.lot_b) == Decimal("5")
    assert await available(db, seed, seed.lot_c) == Decimal("2")
    assert await count_rows(db, Bill) == 0
    assert await count_rows(db, BillItem) == 0
    assert await count_rows(db, BillExtraCharge) == 0
    assert await count_rows(db, InventoryFlow) == 0


async def test_same_lot_on_several_lines_is_checked_cumulatively(db, seed, make_bill_in):
    with pytest.raises(InsufficientStock) as exc_info:
        await settlement.create_bill(
            db, seed.account_id, make_bill_in([(seed.lot_c, 1, 10), (seed.lot_c, "1.5", 10)]))

    assert exc_info.value.line_index == 1
    assert exc_info.value.available == Decimal("1")
    assert await available(db, seed, seed.lot_c) == Decimal("2")

    bill = await settlement.create_bill(
        db, seed.account_id, make_bill_in([(seed.lot_c, 1, 10), (seed.lot_c, 1, 10)]))
    assert len(bill.items) == 2
    assert await available(db, seed, seed.lot_c) == Decimal("0")


async def test_status_changes_never_touch_inventory(db, seed, make_bill_in):
    bill = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 4, 10)]))

    bill = await settlement.update_bill_status(db, seed.account_id, bill.id, "paid")
    assert bill.status == "paid"
    assert await available(db, seed, seed.lot_a) == Decimal("6")

    # 重复设置同一状态不报错
    bill = await settlement.update_bill_status(db, seed.account_id, bill.id, "paid")
    assert bill.status == "paid"

    bill = await settlement.update_bill_status(db, seed.account_id, bill.id, "due")
    assert bill.status == "due"
    assert await available(db, seed, seed.lot_a) == Decimal("6")


async def test_unknown_status_is_rejected(db, seed, make_bill_in):
    bill = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))
    # 失败的事务回滚后实例全部过期，后面只用 id
    bill_id = bill.id

    with pytest.raises(InvalidStatusTransition):
        await settlement.update_bill_status(db, seed.account_id, bill_id, "void")

    reloaded = await settlement.get_bill(db, seed.account_id, bill_id)
    assert reloaded.status == "due"
    assert await available(db, seed, seed.lot_a) == Decimal("9")


async def test_get_bill_is_repeatable(db, seed, make_bill_in):
    created = await settlement.create_bill(
        db, seed.account_id,
        make_bill_in([(seed.lot_a, 2, "9.99"), (seed.lot_b, "0.5", 3)],
                     extra_charges=[{"name": "Handling", "amount": "1.25"}], notes="n"))

    first = snapshot(await settlement.get_bill(db, seed.account_id, created.id))
    second = snapshot(await settlement.get_bill(db, seed.account_id, created.id))

    assert first == second
    assert first[0][1] == created.bill_no
    assert await available(db, seed, seed.lot_a) == Decimal("8")


async def test_header_update_recomputes_tax_only_when_rate_changes(db, seed, make_bill_in):
    bill = await settlement.create_bill(
        db, seed.account_id,
        make_bill_in([(seed.lot_a, 2, "10.00"), (seed.lot_b, 1, "5.50")],
                     extra_charges=[{"name": "Shipping", "amount": "3.00"}]))

    bill = await settlement.update_bill_header(
        db, seed.account_id, bill.id, BillUpdate(notes="月结", invoice_number="INV-9"))
    assert bill.total == Decimal("31.05")
    assert bill.notes == "月结"
    assert bill.invoice_number == "INV-9"

    bill = await settlement.update_bill_header(
        db, seed.account_id, bill.id, BillUpdate(tax_rate=Decimal("0")))
    assert bill.tax == Decimal("0.00")
    assert bill.total == Decimal("28.50")
    assert bill.subtotal == Decimal("25.50")
    assert len(bill.items) == 2
    assert await available(db, seed, seed.lot_a) == Decimal("8")


async def test_header_update_validates_dates_and_client(db, seed, make_bill_in):
    bill = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))
    bill_id = bill.id

    with pytest.raises(ValidationError) as exc_info:
        await settlement.update_bill_header(
            db, seed.account_id, bill_id, BillUpdate(due_date=date(2025, 6, 1)))
    assert exc_info.value.field == "due_date"

    with pytest.raises(ClientNotFound):
        await settlement.update_bill_header(
            db, seed.account_id, bill_id, BillUpdate(client_id=seed.other_client_id))

    reloaded = await settlement.get_bill(db, seed.account_id, bill_id)
    assert reloaded.due_date == date(2025, 7, 4)
    assert reloaded.client_id == seed.client_id
    assert reloaded.status == "due"


async def test_create_rejects_due_date_before_bill_date(db, seed, make_bill_in):
    with pytest.raises(ValidationError):
        await settlement.create_bill(
            db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)], due_date=date(2025, 6, 3)))
    assert await available(db, seed, seed.lot_a) == Decimal("10")


async def test_delete_with_vanished_lot_restores_nothing(db, seed, make_bill_in):
    bill = await settlement.create_bill(
        db, seed.account_id, make_bill_in([(seed.lot_a, 2, 10), (seed.lot_b, 1, 10)]))
    bill_id = bill.id

    # 模拟批次被物理删除（绕过应用）
    await db.execute(text("DELETE FROM inventory_lots WHERE id = :id"), {"id": seed.lot_b})
    await db.commit()

    with pytest.raises(ConsistencyError) as exc_info:
        await settlement.delete_bill(db, seed.account_id, bill_id)
    assert exc_info.value.lot_id == seed.lot_b
    assert exc_info.value.bill_id == bill_id

    assert await available(db, seed, seed.lot_a) == Decimal("8")
    survivor = await settlement.get_bill(db, seed.account_id, bill_id)
    assert len(survivor.items) == 2
    assert await count_rows(db, Bill) == 1


async def test_other_accounts_data_is_invisible(db, seed, make_bill_in):
    bill = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))
    bill_id = bill.id

    with pytest.raises(BillNotFound):
        await settlement.get_bill(db, seed.other_account_id, bill_id)
    with pytest.raises(BillNotFound):
        await settlement.delete_bill(db, seed.other_account_id, bill_id)
    with pytest.raises(ClientNotFound):
        await settlement.create_bill(
            db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)], client_id=seed.other_client_id))
    with pytest.raises(LotNotFound):
        await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.other_lot, 1, 10)]))

    assert await available(db, seed, seed.lot_a) == Decimal("9")


async def test_list_bills_filters_and_orders_newest_first(db, seed, make_bill_in):
    first = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))
    second = await settlement.create_bill(
        db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)], invoice_number="INV-777"))
    await settlement.update_bill_status(db, seed.account_id, first.id, "paid")

    bills, total = await settlement.list_bills(db, seed.account_id)
    assert total == 2
    assert [b.id for b in bills] == [second.id, first.id]
    assert bills[0].client.name == "Globex"

    bills, total = await settlement.list_bills(db, seed.account_id, status="paid")
    assert (total, [b.id for b in bills]) == (1, [first.id])

    bills, total = await settlement.list_bills(db, seed.account_id, search="777")
    assert (total, [b.id for b in bills]) == (1, [second.id])

    bills, total = await settlement.list_bills(db, seed.account_id, offset=1, limit=1)
    assert total == 2
    assert [b.id for b in bills] == [first.id]

    assert await settlement.list_bills(db, seed.other_account_id) == ([], 0)


async def test_bill_numbers_keep_increasing_past_999(db, seed, make_bill_in):
    first = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))
    assert first.bill_no == "BL20250604001"

    await db.execute(update(Bill).where(Bill.id == first.id).values(bill_no="BL20250604999"))
    await db.commit()

    second = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))
    third = await settlement.create_bill(db, seed.account_id, make_bill_in([(seed.lot_a, 1, 10)]))

    assert second.bill_no == "BL202506041000"
    assert third.bill_no == "BL202506041001"
    # 其它日期、其它账户各自从 001 开始
    assert await settlement.generate_bill_no(db, seed.account_id, date(2025, 6, 5)) == "BL20250605001"
    assert await settlement.generate_bill_no(db, seed.other_account_id, date(2025, 6, 4)) == "BL20250604001"
