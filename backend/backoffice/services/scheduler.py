"""
定时任务调度器服务
使用 APScheduler 实现库存占用对账等定时任务
"""

import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from backoffice.core.config import settings
from backoffice.db.session import SessionLocal
from backoffice.services.inventory_ledger import AuditReport, audit_reservations

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None


async def run_reservation_audit() -> AuditReport:
    """执行占用对账任务：可用数量 ≠ 入库总量 - 账单占用 的批次逐条告警"""
    async with SessionLocal() as db:
        report = await audit_reservations(db)

    for drift in report.drifted:
        logger.warning(
            f"⚠️ 批次 {drift.lot_id} 占用不一致: 总量 {drift.quantity}, 账单占用 {drift.reserved_by_bills}, "
            f"应可用 {drift.expected_available}, 实际可用 {drift.available_quantity}"
        )

    if report.drifted:
        logger.warning(f"占用对账完成: 检查 {report.checked} 个批次，{len(report.drifted)} 个不一致")
    else:
        logger.info(f"✅ 占用对账完成: 检查 {report.checked} 个批次，全部一致")
    return report


def init_scheduler():
    """初始化并启动调度器"""
    global scheduler

    if not settings.RESERVATION_AUDIT_ENABLED:
        logger.info("📦 占用对账任务已禁用")
        return

    scheduler = AsyncIOScheduler()

    # 默认每天凌晨 2:30 执行
    scheduler.add_job(
        run_reservation_audit,
        trigger=CronTrigger(
            hour=settings.RESERVATION_AUDIT_HOUR,
            minute=settings.RESERVATION_AUDIT_MINUTE
        ),
        id="reservation_audit",
        name="库存占用对账",
        replace_existing=True
    )

    scheduler.start()
    logger.info(
        f"⏰ 定时任务调度器已启动 - 占用对账时间: 每天 "
        f"{settings.RESERVATION_AUDIT_HOUR:02d}:{settings.RESERVATION_AUDIT_MINUTE:02d}"
    )


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")
