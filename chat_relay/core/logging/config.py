"""
Logging configuration and setup for the chat relay.

Plain text formatting with Unicode escape decoding so upstream error bodies
stay readable in the logs.
"""

import logging
import os
import json
import re


LOGGER_NAME = "chat-relay"


class UnicodeFormatter(logging.Formatter):
    """
    Formatter that decodes Unicode escape sequences in log messages.
    """

    def __init__(self, fmt=None, datefmt=None):
        super().__init__(fmt, datefmt)
        self.unicode_pattern = re.compile(r'\\u([0-9a-fA-F]{4})')

    def _decode_unicode_escapes(self, text):
        """
        Decode Unicode escape sequences in the given text.

        Args:
            text (str): Text that may contain Unicode escape sequences

        Returns:
            str: Text with Unicode escape sequences decoded to actual characters
        """
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


def setup_logging(log_level=None):
    """
    Configure the project logger.

    The level comes from the argument or LOG_LEVEL, the log directory from
    LOG_DIR. Calling it again reconfigures the same logger.

    Returns:
        logging.Logger: Configured logger instance
    """
    log_level = (log_level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        log_level = "INFO"

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level))
    logger.handlers.clear()
    logger.propagate = False

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

        if log_level == "DEBUG":
            debug_handler = logging.FileHandler(os.path.join(log_dir, "debug.log"))
            debug_handler.setFormatter(formatter)
            debug_handler.setLevel(logging.DEBUG)
            logger.addHandler(debug_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if log_level == "DEBUG" else logging.INFO)
    logger.addHandler(console_handler)

    return logger
