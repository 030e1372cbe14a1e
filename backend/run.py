import os

import uvicorn

from app.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    is_dev = not settings.is_production
    uvicorn.run(
        "app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=is_dev,
        # WebSocket rooms are held in process memory
        workers=1,
        log_level="debug" if is_dev else "info",
    )
