import os
import sys

from loguru import logger

LOG_DIR = "logs"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[name]} | {file}:{line} | {message}"
CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# модули, чьи сообщения дублируются в отдельные файлы
_TOPIC_SINKS = {
    "daily_reset.log": ("reset_scheduler", "daily_reset", "reset_counters"),
    "ledger.log": ("reward_ledger", "referral_commission", "ledger_sync"),
    "watch.log": ("watch_orchestrator", "provider_adapter", "client_signals", "session_state"),
}

_initialized = False


def _module_filter(modules):
    return lambda record: any(module in record["extra"].get("name", "") for module in modules)


def _file_sink(filename: str, level: str, rotation: str, retention: str, filter=None) -> None:
    logger.add(
        sink=os.path.join(LOG_DIR, filename),
        format=FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        compression="zip",
        backtrace=True,
        diagnose=False,
        enqueue=True,
        catch=True,
        level=level,
        filter=filter,
    )


def init_logger(console_level: str = "INFO") -> None:
    """
    Инициализация loguru: консоль, общий файл, файл ошибок и тематические файлы
    (ежедневный сброс, начисления, просмотры).

    Повторный вызов ничего не делает (main импортируется и в тестах).
    """
    global _initialized
    if _initialized:
        return

    os.makedirs(LOG_DIR, exist_ok=True)
    logger.remove()
    logger.configure(extra={"name": "root"})

    logger.add(sink=sys.stderr, format=CONSOLE_FORMAT, level=console_level, colorize=True, enqueue=True)

    _file_sink("app.log", "DEBUG", rotation="30 days", retention="90 days")
    _file_sink(
        "errors.log", "ERROR", rotation="30 days", retention="90 days",
        filter=lambda record: record["level"].no >= 40,
    )
    for filename, modules in _TOPIC_SINKS.items():
        _file_sink(filename, "INFO", rotation="7 days", retention="30 days", filter=_module_filter(modules))

    _initialized = True
    logger.success("Logger initialized successfully")


def get_logger(name: str = None):
    """
    Логер модуля: `name` попадает в `extra[name]` и в формат строки.
    """
    if name:
        return logger.bind(name=name)
    return logger
