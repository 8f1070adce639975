from .error_handler import log_exceptions, convert_exceptions
from .logging_config import LoggerManager, log_manager, install_loop_exception_handler

__all__ = [
    "log_exceptions",
    "convert_exceptions",
    "LoggerManager",
    "log_manager",
    "install_loop_exception_handler",
]
