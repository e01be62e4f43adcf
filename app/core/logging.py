import logging
import sys
from typing import Dict, Any
from app.utils.dates import utcnow
from app.config import settings

class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, '')
        if color:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)

def setup_logging():
    """Configure the root logger once at startup"""

    level = logging.DEBUG if settings.debug else logging.INFO
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(console_handler)

    # Quiet third-party chatter
    for noisy in ("uvicorn.access", "asyncpg", "botocore", "boto3", "urllib3",
                  "httpcore", "httpx", "stripe", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger

def log_request_context(user_id: str = None, session_id: str = None) -> Dict[str, Any]:
    """Build the context dict attached to error log records"""
    context = {
        "timestamp": utcnow().isoformat(),
    }

    if session_id:
        context["session_id"] = str(session_id)[:8] + "..."

    if user_id:
        context["user_id"] = str(user_id)[:8] + "..."

    return context
