# =============================================
# File: ctxcommerce/utils/logging.py
# Purpose: Logging configuration (operational logs via loguru)
# =============================================
from loguru import logger

from ctxcommerce.utils import settings

LOG_FILE = settings.log_file()

if LOG_FILE:
    logger.add(LOG_FILE, rotation="10 MB", level=settings.log_level())

__all__ = ["logger"]
