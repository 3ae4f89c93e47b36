"""
Secure Logging Utility
Structured logging shared by the API layer and the scheduling services

REQUIREMENTS:
- No credentials or tokens in logs
- Structured audit entries for user-visible mutations
- Sanitized error messages
"""

import logging
import re
import sys
import json
from typing import Optional, Dict, Any
from datetime import datetime, timezone

# Configure root logger
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a module"""
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    return logger


class SecureLogger:
    """
    Logging wrapper that prevents credential leakage
    """

    SENSITIVE_PATTERNS = [
        r'password',
        r'secret',
        r'token',
        r'api[_-]?key',
        r'credential',
        r'authorization',
        r'bearer',
        r'session',
        r'cookie',
    ]

    @staticmethod
    def sanitize_message(message: str) -> str:
        """
        Sanitize log message to remove sensitive information

        Args:
            message: Original log message

        Returns:
            Sanitized log message
        """
        # Remove email addresses
        message = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b', '[email]', message)

        # Remove bearer tokens and other long opaque strings
        message = re.sub(r'(?i)bearer\s+\S+', 'Bearer [token]', message)
        message = re.sub(r'\b[A-Za-z0-9_\-]{32,}\b', '[token]', message)

        # Remove stack traces (keep first line only)
        if '\n' in message:
            message = message.split('\n')[0] + ' [stack trace truncated]'

        return message

    @staticmethod
    def should_sanitize(message: str) -> bool:
        """Check if message contains sensitive patterns"""
        message_lower = message.lower()
        for pattern in SecureLogger.SENSITIVE_PATTERNS:
            if re.search(pattern, message_lower):
                return True
        return False

    @classmethod
    def log(cls, logger: logging.Logger, level: int, message: str, *args, **kwargs):
        if cls.should_sanitize(message):
            message = cls.sanitize_message(message)
            logger.log(level, f"[SANITIZED] {message}", *args, **kwargs)
        else:
            logger.log(level, message, *args, **kwargs)


def log_error(message: str, logger_name: Optional[str] = None, exc_info: bool = False, **kwargs):
    """Log error message securely"""
    logger = get_logger(logger_name or __name__)
    if exc_info:
        kwargs['exc_info'] = True
    SecureLogger.log(logger, logging.ERROR, message, **kwargs)


def log_audit(event_type: str, user_id: Optional[str], details: Dict[str, Any]):
    """
    Log audit event with structured data

    Args:
        event_type: Type of audit event
        user_id: User ID (if applicable)
        details: Additional event details
    """
    logger = get_logger("audit")
    audit_entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "details": details
    }
    logger.info(f"[AUDIT] {json.dumps(audit_entry, default=str)}")
