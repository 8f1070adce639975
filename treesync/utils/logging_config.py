import asyncio
import sys
from typing import Optional
from loguru import logger


class LoggerManager:
    def __init__(self):
        self.console_sink_id = None
        self.file_sink_id = None

        # Always remove the default handler
        logger.remove()

    def enable_console(self, level: str = "INFO", serialize: bool = False):
        self.disable_console()
        self.console_sink_id = logger.add(
            sys.stderr,
            level=level.upper(),
            colorize=not serialize,
            serialize=serialize,
        )

    def disable_console(self):
        if self.console_sink_id is not None:
            logger.remove(self.console_sink_id)
            self.console_sink_id = None

    def enable_file(self, path: str, level: str = "INFO", rotation: str = "10 MB",
                    retention_days: int = 7, serialize: bool = False):
        self.disable_file()
        self.file_sink_id = logger.add(
            path,
            level=level.upper(),
            rotation=rotation,
            retention=f"{retention_days} days",
            serialize=serialize,
            enqueue=True,
        )

    def disable_file(self):
        if self.file_sink_id is not None:
            logger.remove(self.file_sink_id)
            self.file_sink_id = None

    def configure(self, logging_config) -> None:
        """Apply a LoggingConfig to the loguru sinks."""
        self.enable_console(level=logging_config.level, serialize=logging_config.enable_json)
        if logging_config.log_file:
            self.enable_file(
                logging_config.log_file,
                level=logging_config.level,
                rotation=logging_config.max_file_size,
                retention_days=logging_config.retention_days,
                serialize=logging_config.enable_json,
            )
        else:
            self.disable_file()


def _loop_exception_handler(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    exception: Optional[BaseException] = context.get("exception")
    task = context.get("task") or context.get("future")
    task_name = task.get_name() if isinstance(task, asyncio.Task) else None
    message = context.get("message", "Unhandled exception in event loop")
    if exception is not None:
        logger.opt(exception=exception).error(
            "An unhandled exception occurred: {}", message, task=task_name
        )
    else:
        logger.error("An unhandled event loop error occurred: {}", message, task=task_name)


def install_loop_exception_handler(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Route exceptions nobody awaited to loguru instead of stderr."""
    loop = loop or asyncio.get_running_loop()
    loop.set_exception_handler(_loop_exception_handler)


log_manager = LoggerManager()
