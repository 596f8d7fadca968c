"""
金额/数量计算

全部使用 Decimal，禁止 float 参与运算：
- 金额字段保留两位小数，四舍五入（ROUND_HALF_UP），在落库前取整
- 数量字段保留调用方给出的精度，不做隐式取整
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Tuple

CURRENCY_QUANT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """转为 Decimal（经 str 转换，避免 float 的二进制误差）"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: Any) -> Decimal:
    """金额取整到分"""
    return to_decimal(value).quantize(CURRENCY_QUANT, rounding=ROUND_HALF_UP)


def line_total(quantity: Any, price: Any) -> Decimal:
    """明细金额 = 数量 × 单价"""
    return round_currency(to_decimal(quantity) * to_decimal(price))


def compute_tax(subtotal: Any, tax_rate: Any) -> Decimal:
    """税额 = 小计 × 税率 / 100"""
    return round_currency(to_decimal(subtotal) * to_decimal(tax_rate) / HUNDRED)


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    tax: Decimal
    extra_charges_total: Decimal
    total: Decimal


def totals_from_parts(subtotal: Any, extra_charges_total: Any, tax_rate: Any) -> BillTotals:
    subtotal = round_currency(subtotal)
    extra_charges_total = round_currency(extra_charges_total)
    tax = compute_tax(subtotal, tax_rate)
    return BillTotals(
        subtotal=subtotal,
        tax=tax,
        extra_charges_total=extra_charges_total,
        total=subtotal + tax + extra_charges_total,
    )


def compute_bill_totals(
    lines: Iterable[Tuple[Any, Any]],
    charges: Iterable[Any],
    tax_rate: Any,
) -> BillTotals:
    """
    计算账单汇总

    Args:
        lines: (数量, 单价) 列表
        charges: 附加费用金额列表
        tax_rate: 税率（百分比）

    小计为各明细取整后金额之和，保证表头与已保存的明细一致。
    """
    subtotal = sum((line_total(q, p) for q, p in lines), ZERO)
    extra = sum((round_currency(a) for a in charges), ZERO)
    return totals_from_parts(subtotal, extra, tax_rate)
