"""
日志配置

- 控制台：带颜色的级别名，开发时看
- logs/backoffice_<日期>.log：INFO 及以上，全部业务日志（开单、删单、对账结果）
- logs/error_<日期>.log：只有 ERROR，库存一致性故障集中在这里排查

目录和级别来自 settings.LOG_DIR / settings.LOG_LEVEL，由 main.py 在启动时调用。
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 这些库在 INFO 级别太吵：每个请求、每条 SQL、每次任务触发都会打一行
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler")


class ColoredFormatter(logging.Formatter):
    """控制台格式：只给级别名上色"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # 同一条记录还要交给文件处理器，不能改原对象
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno)
        if color:
            colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Union[str, Path] = "logs") -> Path:
    """
    重建根日志器的处理器，返回日志目录

    多次调用（测试、reload）不会叠加处理器。
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%d")

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(console)
    root.addHandler(_file_handler(log_path / f"backoffice_{stamp}.log", logging.INFO))
    root.addHandler(_file_handler(log_path / f"error_{stamp}.log", logging.ERROR))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"📋 日志输出到 {log_path.resolve()}，级别 {log_level.upper()}")
    return log_path


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
