"""
自定义列类型

SQLite 没有定点小数，Numeric 实际按 REAL（双精度浮点）存储，
12 位整数 + 6 位小数的数量写入后会被改写。数量列因此在 SQLite 上
以规范化的十进制字符串保存，其它数据库仍使用原生 NUMERIC。
"""

from decimal import Decimal

from sqlalchemy import Numeric, String
from sqlalchemy.types import TypeDecorator

QUANTITY_PRECISION = 18
QUANTITY_SCALE = 6
QUANTITY_QUANT = Decimal(1).scaleb(-QUANTITY_SCALE)


class Quantity(TypeDecorator):
    """数量列：Numeric(18, 6)，SQLite 上存为定长小数位的字符串"""

    impl = Numeric(QUANTITY_PRECISION, QUANTITY_SCALE)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            # 符号 + 12 位整数 + 小数点 + 6 位小数
            return dialect.type_descriptor(String(QUANTITY_PRECISION + 2))
        return dialect.type_descriptor(Numeric(QUANTITY_PRECISION, QUANTITY_SCALE))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(str(value)).quantize(QUANTITY_QUANT)
        if dialect.name == "sqlite":
            return format(value, "f")
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(str(value))
