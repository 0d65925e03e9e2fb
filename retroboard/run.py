#!/usr/bin/env python3
"""Run the Retro Board API"""
import uvicorn

from retroboard.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "retroboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
