import logging
import logging.handlers
import re
from pathlib import Path
from typing import Optional

from superorder.core.config import settings

class SensitiveDataFilter(logging.Filter):
    """
    Filter to mask keys and signatures in log records.
    """
    def __init__(self, name=""):
        super().__init__(name)
        self.patterns = [
            (r'(api_key=)[\'"]?([^\'"\s,]+)[\'"]?', r'\1***MASKED***'),
            (r'(secret=)[\'"]?([^\'"\s,]+)[\'"]?', r'\1***MASKED***'),
            (r'(private_key=)[\'"]?([^\'"\s,]+)[\'"]?', r'\1***MASKED***'),
            (r'(signature=)[\'"]?([^\'"\s,]+)[\'"]?', r'\1***MASKED***'),
        ]

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True

        msg = record.msg
        for pattern, replacement in self.patterns:
            msg = re.sub(pattern, replacement, msg, flags=re.IGNORECASE)

        record.msg = msg
        return True

def setup_logging(log_level: Optional[str] = None, log_file_path: Optional[str] = None) -> Path:
    """
    Configures logging for the conditional execution layer.
    Writes logs to stdout and to a rotating file.
    """
    log_file = Path(log_file_path or settings.LOG_FILE_PATH)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    sensitive_filter = SensitiveDataFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(sensitive_filter)

    # Rotates at 10MB, keeps 5 backups
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    file_handler.addFilter(sensitive_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel((log_level or settings.LOG_LEVEL).upper())

    # Remove existing handlers to avoid duplicates if called multiple times
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    logging.getLogger("ccxt").setLevel(logging.ERROR)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return log_file
