#!/usr/bin/env python
"""Start the API under uvicorn with the shared log format"""

import os

import uvicorn
from src.core.config import get_settings
from src.core.uvicorn_config import get_uvicorn_log_config

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "src.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.debug,
        log_level="info",
        log_config=get_uvicorn_log_config()
    )
