"""
Logging configuration and setup for the chat-recall service.

Plain text formatting, one named logger, console output always and file
output under LOG_DIR unless it is set to an empty string.
"""

import logging
import os
import json
import re

LOGGER_NAME = "chat-recall"


class UnicodeFormatter(logging.Formatter):
    """
    Formatter that decodes Unicode escape sequences in log messages.

    Upstream providers frequently return JSON error bodies with \\uXXXX
    escapes; decoding them keeps non-ASCII questions readable in the logs.
    """

    def __init__(self, fmt=None, datefmt=None):
        super().__init__(fmt, datefmt)
        self.unicode_pattern = re.compile(r'\\u([0-9a-fA-F]{4})')

    def _decode_unicode_escapes(self, text):
        if not text:
            return text

        try:
            if '"error":' in text and '\\u' in text:
                decoded = json.loads(text)
                if isinstance(decoded, dict):
                    return json.dumps(decoded, ensure_ascii=False)
        except (json.JSONDecodeError, ValueError):
            pass

        def replace_unicode(match):
            try:
                return chr(int(match.group(1), 16))
            except ValueError:
                return match.group(0)

        return self.unicode_pattern.sub(replace_unicode, text)

    def format(self, record):
        formatted = super().format(record)
        return self._decode_unicode_escapes(formatted)


def setup_logging():
    """
    Configure the service logger.

    Environment:
        LOG_LEVEL: minimum level for the logger (default INFO).
        LOG_DIR: directory for app.log / debug.log (default "logs");
            an empty value disables file output.

    Returns:
        logging.Logger: Configured logger instance
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = UnicodeFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z"
    )

    log_dir = os.environ.get("LOG_DIR", "logs")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(os.path.join(log_dir, "app.log"))
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        logger.addHandler(file_handler)

        if level == logging.DEBUG:
            debug_handler = logging.FileHandler(os.path.join(log_dir, "debug.log"))
            debug_handler.setFormatter(formatter)
            debug_handler.setLevel(logging.DEBUG)
            logger.addHandler(debug_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if level == logging.DEBUG else logging.INFO)
    logger.addHandler(console_handler)

    return logger
