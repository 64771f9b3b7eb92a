# Utils module exports
from utils.browser import open_in_browser
from utils.logger import log_debug, log_error, log_info, log_success, log_warning, setup_logging

__all__ = [
    "open_in_browser",
    "log_debug",
    "log_error",
    "log_info",
    "log_success",
    "log_warning",
    "setup_logging",
]
