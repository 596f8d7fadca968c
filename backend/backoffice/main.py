from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.api.api import api_router
from backoffice.core.config import settings
from backoffice.core.exceptions import BackofficeError, ConsistencyError
from backoffice.core.logging_config import setup_logging, get_logger
from backoffice.services.scheduler import init_scheduler, shutdown_scheduler
from backoffice.db.init_db import ensure_tables_exist

# 初始化日志系统
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    logger.info("🚀 应用启动中...")

    await ensure_tables_exist()
    logger.info("📊 数据库表已就绪")

    init_scheduler()
    yield
    # 关闭时
    logger.info("🛑 应用关闭中...")
    shutdown_scheduler()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    description="账单与库存结算后台",
    lifespan=lifespan
)

# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(BackofficeError)
async def backoffice_error_handler(request: Request, exc: BackofficeError):
    """业务异常统一转换为 JSON 响应"""
    if isinstance(exc, ConsistencyError):
        logger.error(f"❌ {request.method} {request.url.path} 数据不一致: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} 被拒绝: [{exc.code}] {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


logger.info(f"注册API路由，前缀: {settings.API_PREFIX}")
app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health():
    return {"status": "ok"}
