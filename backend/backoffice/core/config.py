from decimal import Decimal
from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Back-office 账单与库存系统"
    API_PREFIX: str = "/api"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置（sqlite:/// 会自动切换为 aiosqlite 异步驱动）
    DATABASE_URI: str = "sqlite:///./backoffice.db"
    SQL_ECHO: bool = False
    # SQLite 写锁等待时间（秒）
    SQLITE_BUSY_TIMEOUT: float = 15.0

    # 账单默认值
    DEFAULT_TAX_RATE: Decimal = Field(default=Decimal("10"), ge=0, le=100, description="默认税率（百分比）")
    PAYMENT_TERM_DAYS: int = Field(default=30, ge=0, description="默认账期（天）")

    # 库存预警阈值（可用数量 <= 该值视为低库存）
    LOW_STOCK_THRESHOLD: Decimal = Decimal("5")

    # 预留对账任务
    RESERVATION_AUDIT_ENABLED: bool = True
    RESERVATION_AUDIT_HOUR: int = 2  # 每天执行时间（小时，0-23）
    RESERVATION_AUDIT_MINUTE: int = 30  # 每天执行时间（分钟，0-59）

    # 日志
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: API_PREFIX={settings.API_PREFIX}, CORS={settings.BACKEND_CORS_ORIGINS}")
