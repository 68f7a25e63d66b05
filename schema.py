import calendar
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic_core import PydanticSerializationError

logger = logging.getLogger("logger.schema")

EPOCH = datetime(1970, 1, 1)
NANOS_PER_SECOND = 1_000_000_000


def to_unix_nanos(value: datetime) -> int:
    """Nanoseconds since the Unix epoch. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    seconds = calendar.timegm(value.utctimetuple())
    return seconds * NANOS_PER_SECOND + value.microsecond * 1000


# 0001-01-01T00:00:00Z, the zero instant an unset timestamp renders as
ZERO_TIME = to_unix_nanos(datetime.min)


def format_rfc3339_nanos(nanos: int) -> str:
    """RFC 3339 in UTC with a fixed 9-digit fraction: 2020-10-16T21:22:23.000000024Z"""
    seconds, fraction = divmod(nanos, NANOS_PER_SECOND)
    moment = EPOCH + timedelta(seconds=seconds)
    return f"{moment.isoformat(timespec='seconds')}.{fraction:09d}Z"


# The aliases below are the field names Cloud Logging looks for in a JSON
# line on stdout. They must not change.

class SourceLocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file: str = ""
    line: str = ""
    function: str = ""


class HTTPRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    method: str = Field("", alias="requestMethod")
    url: str = Field("", alias="requestUrl")
    # Byte counts are strings so large values survive JSON consumers
    size: str = Field("", alias="requestSize")
    status: int = 0
    response_size: str = Field("", alias="responseSize")
    user_agent: str = Field("", alias="userAgent")
    remote_ip: str = Field("", alias="remoteIp")
    server_ip: str = Field("", alias="serverIp")
    referer: str = ""
    latency: str = ""
    cache_lookup: bool = Field(False, alias="cacheLookup")
    cache_hit: bool = Field(False, alias="cacheHit")
    cache_validated_with_origin_server: bool = Field(False, alias="cacheValidatedWithOriginServer")
    cache_fill_bytes: str = Field("", alias="cacheFillBytes")
    protocol: str = ""


class LogEntry(BaseModel):
    """
    One structured log event.
    Serializes to a single JSON line that Cloud Logging parses into
    severity, message, request metadata and trace correlation.
    """
    model_config = ConfigDict(populate_by_name=True)

    severity: str = ""
    message: str
    http_request: HTTPRequest = Field(default_factory=HTTPRequest, alias="httpRequest")
    # Nanoseconds since the Unix epoch; datetime has only microseconds
    timestamp: int = Field(ZERO_TIME, alias="time")
    insert_id: str = Field("", alias="logging.googleapis.com/insertId")
    labels: dict[str, Any] = Field(default_factory=dict, alias="logging.googleapis.com/labels")
    operation: str = Field("", alias="logging.googleapis.com/operation")
    source_location: SourceLocation = Field(
        default_factory=SourceLocation, alias="logging.googleapis.com/sourceLocation"
    )
    span_id: str = Field("", alias="logging.googleapis.com/spanId")
    trace: str = Field("", alias="logging.googleapis.com/trace")
    trace_sampled: bool = Field(False, alias="logging.googleapis.com/trace_sampled")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _datetime_to_nanos(cls, value):
        if isinstance(value, datetime):
            return to_unix_nanos(value)
        return value

    @field_serializer("timestamp")
    def _render_timestamp(self, value: int) -> str:
        return format_rfc3339_nanos(value)

    @field_serializer("labels")
    def _render_labels(self, value: dict[str, Any]) -> dict[str, Any]:
        # Sorted so equal label sets always render the same bytes
        for key, item in value.items():
            if isinstance(item, float) and not math.isfinite(item):
                raise ValueError(f"unsupported label value {key}={item!r}")
        return dict(sorted(value.items()))

    def to_json(self) -> str:
        """
        Render the entry as one compact JSON line (no trailing newline).
        Never raises: a failure is logged and an empty string is returned,
        so a bad entry can't break the request that is logging it.
        """
        entry = self
        if not entry.severity:
            entry = self.model_copy(update={"severity": "INFO"})
        try:
            return entry.model_dump_json(by_alias=True)
        except (PydanticSerializationError, ValueError, TypeError, OverflowError) as exc:
            logger.error("model_dump_json: %s", exc)
            return ""

    def __str__(self) -> str:
        return self.to_json()
