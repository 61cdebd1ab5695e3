import logging
import logging.config

from vkbridge.core.request_context import get_callback_scope, get_request_id

_ALLOWED_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

# httpx logs a line per VK API call at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore")


class CallbackContextFilter(logging.Filter):
    """Stamp records with the request id and the VK callback being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = get_request_id()
        scope = get_callback_scope()
        record.request_id = request_id if request_id else "-"
        record.vk_callback = scope.label if scope is not None else "-"
        return True


def configure_logging(level: str) -> None:
    normalized_level = level.upper()
    if normalized_level not in _ALLOWED_LEVELS:
        allowed = ", ".join(sorted(_ALLOWED_LEVELS))
        raise ValueError(f"Invalid LOG_LEVEL '{level}'. Expected one of: {allowed}")

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s %(levelname)s %(name)s "
                        "[request_id=%(request_id)s vk=%(vk_callback)s]: %(message)s"
                    ),
                }
            },
            "filters": {
                "callback_context": {"()": "vkbridge.core.logging.CallbackContextFilter"},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                    "filters": ["callback_context"],
                }
            },
            "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            "root": {
                "level": normalized_level,
                "handlers": ["console"],
            },
        }
    )
