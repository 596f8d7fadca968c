"""
业务异常

服务层只抛出这些异常，由 main.py 中注册的处理器统一转换为 JSON 响应：
{"error": <code>, "detail": <message>, ...附加字段}
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class BackofficeError(Exception):
    """所有业务异常的基类"""
    code = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extra(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "detail": self.message}
        payload.update(self.extra())
        return payload


class ValidationError(BackofficeError):
    """输入不合法（空明细、数量非正、税率越界等）"""
    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def extra(self) -> Dict[str, Any]:
        return {"field": self.field}


class InvalidStatusTransition(ValidationError):
    code = "invalid_status_transition"

    def __init__(self, current: str, target: str):
        super().__init__(f"账单状态不能从 '{current}' 变更为 '{target}'", field="status")
        self.current = current
        self.target = target


class InsufficientStock(BackofficeError):
    """可用库存不足，整单拒绝"""
    code = "insufficient_stock"
    status_code = 409

    def __init__(
        self,
        lot_id: int,
        available: Decimal,
        requested: Decimal,
        line_index: Optional[int] = None,
    ):
        super().__init__(f"批次 {lot_id} 可用数量不足：可用 {available}，需要 {requested}")
        self.lot_id = lot_id
        self.available = available
        self.requested = requested
        self.line_index = line_index

    def extra(self) -> Dict[str, Any]:
        return {
            "lot_id": self.lot_id,
            "available": str(self.available),
            "requested": str(self.requested),
            "line_index": self.line_index,
        }


class NotFound(BackofficeError):
    """资源不存在，或不属于当前账户"""
    code = "not_found"
    status_code = 404
    resource = "resource"
    label = "资源"

    def __init__(self, resource_id: Any, message: Optional[str] = None):
        super().__init__(message or f"{self.label} {resource_id} 不存在")
        self.resource_id = resource_id

    def extra(self) -> Dict[str, Any]:
        return {"resource": self.resource, "resource_id": self.resource_id}


class BillNotFound(NotFound):
    resource = "bill"
    label = "账单"


class ClientNotFound(NotFound):
    resource = "client"
    label = "客户"


class SupplierNotFound(NotFound):
    resource = "supplier"
    label = "供应商"


class ItemNotFound(NotFound):
    resource = "item"
    label = "商品"


class LotNotFound(NotFound):
    resource = "inventory_lot"
    label = "库存批次"


class ResourceInUse(BackofficeError):
    """资源仍被引用，不能删除"""
    code = "resource_in_use"
    status_code = 409

    def __init__(self, resource: str, resource_id: Any, message: str):
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id

    def extra(self) -> Dict[str, Any]:
        return {"resource": self.resource, "resource_id": self.resource_id}


class ConsistencyError(BackofficeError):
    """不应出现的数据状态（如账单明细引用的批次已被物理删除）

    单次操作失败并回滚，不可重试，需要人工排查数据。
    """
    code = "consistency_error"
    status_code = 500

    def __init__(self, message: str, lot_id: Optional[int] = None, bill_id: Optional[int] = None):
        super().__init__(message)
        self.lot_id = lot_id
        self.bill_id = bill_id

    def extra(self) -> Dict[str, Any]:
        return {"lot_id": self.lot_id, "bill_id": self.bill_id}
