"""API 路由聚合"""
from fastapi import APIRouter

from backoffice.api.endpoints import (
    clients, suppliers, items, inventory, bills, dashboard
)

api_router = APIRouter()

# 基础资料
api_router.include_router(clients.router, prefix="/clients", tags=["客户管理"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["供应商管理"])
api_router.include_router(items.router, prefix="/items", tags=["商品管理"])

# 库存与账单
api_router.include_router(inventory.router, prefix="/inventory", tags=["库存批次"])
api_router.include_router(bills.router, prefix="/bills", tags=["账单管理"])

# 统计
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["仪表盘"])
