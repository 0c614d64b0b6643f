import logging
import logging.config
import re

from chatai_client.request_id import get_request_id

LOG_FORMAT = "%(levelname)s %(name)s request_id=%(request_id)s %(message)s"

# httpx logs every request URL, and the API key travels in its query string.
SDK_LOGGERS = ("chatai_client", "httpx")

# Applied in order, each on the output of the previous one.
_REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[\w.%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"), "[redacted_email]"),
    (re.compile(r'(?i)("(?:content|query)"\s*:\s*")(?:[^"\\]|\\.)*(")'), r"\1[redacted]\2"),
    (re.compile(r"(?i)(\b(?:content|query)\b\s*[:=]\s*)[^\s,;&]+"), r"\1[redacted]"),
    (re.compile(r"(?i)\bbearer\s+[\w\-.~+/]+=*"), "Bearer [redacted]"),
    (
        re.compile(r"(?i)\b(apikey|api_key|authorization|token|secret|password|cookie)\b\s*[:=]\s*[^\s,;&\"']+"),
        r"\1=[redacted]",
    ),
)


def redact_text(text: str) -> str:
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


class RequestIdFilter(logging.Filter):
    """Stamps each record with the correlation id of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class RedactionFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Format first so secrets passed as %-args are masked too.
        record.msg = redact_text(record.getMessage())
        record.args = ()
        return True


def configure_logging(log_level: str = "INFO") -> None:
    """Send SDK and ``httpx`` records to stderr with ids attached and secrets masked.

    Only the loggers in ``SDK_LOGGERS`` are configured. The root logger and
    any handlers the application installed elsewhere are left alone.
    """
    level = log_level.upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": RequestIdFilter},
                "redact": {"()": RedactionFilter},
            },
            "formatters": {"sdk": {"format": LOG_FORMAT}},
            "handlers": {
                "sdk_console": {
                    "class": "logging.StreamHandler",
                    "formatter": "sdk",
                    "filters": ["request_id", "redact"],
                }
            },
            "loggers": {
                name: {"handlers": ["sdk_console"], "level": level, "propagate": False}
                for name in SDK_LOGGERS
            },
        }
    )
