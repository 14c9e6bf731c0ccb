#!/usr/bin/env python3
"""
ledtech trust core - Main entry point
"""

import logging
import sys

import uvicorn

from ledtech.app import create_app
from ledtech.config import Config

# Configure logging
Config.LOG_DIR.mkdir(parents=True, exist_ok=True)
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler(Config.LOG_DIR / "ledtech.log"),
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)

app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=Config.MAIN_PORT, reload=False)
