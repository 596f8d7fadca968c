import uvicorn
import os

if __name__ == "__main__":
    # BACKOFFICE_RELOAD=0 关闭热重载（生产环境）
    is_dev = os.getenv("BACKOFFICE_RELOAD", "1") != "0"

    uvicorn.run(
        "backoffice.main:app",
        host=os.getenv("BACKOFFICE_HOST", "127.0.0.1"),
        port=int(os.getenv("BACKOFFICE_PORT", "8000")),
        reload=is_dev,
        log_level="info"
    )
