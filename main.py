import logging
import os
from datetime import datetime, timezone

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

# Custom modules
from logging_utils import LogSink, configure_logging, write_entry
from schema import HTTPRequest, LogEntry, SourceLocation, to_unix_nanos

load_dotenv()

logger = logging.getLogger("logger.main")

DEFAULT_PORT = 8080


def get_port():
    """PORT from the environment, or 8080 when unset."""
    port = os.getenv("PORT")
    if not port:
        logger.info("Defaulting to port %s", DEFAULT_PORT)
        return DEFAULT_PORT
    return int(port)


def build_example_entry():
    """The fixed entry logged on every request, with every field populated."""
    return LogEntry(
        severity="NOTICE",
        message="This is the default display field.",
        http_request=HTTPRequest(
            method="POST",
            url="https://myapi.com",
            size="1234",
            status=200,
            response_size="5678",
            user_agent="UserAgent",
            remote_ip="192.168.1.1",
            server_ip="192.168.1.1",
            referer="https://referer.com",
            latency="3.5s",
            cache_lookup=True,
            cache_hit=True,
            cache_validated_with_origin_server=True,
            cache_fill_bytes="31415",
            protocol="HTTP/2",
        ),
        # 24 nanoseconds past the second
        timestamp=to_unix_nanos(datetime(2020, 10, 16, 21, 22, 23, tzinfo=timezone.utc)) + 24,
        insert_id="123456",
        labels={
            "key1": "value",
            "key2": "42",
        },
        operation="operation",
        source_location=SourceLocation(
            file="main.go",
            line="132",
            function="indexHandler",
        ),
        span_id="000000000000004a",
        trace="projects/my-projectid/traces/06796866738c859f2f19b7cfb3214824",
        trace_sampled=True,
    )


def create_app(sink=None, entry_factory=build_example_entry):
    """
    Builds the app around a log sink.
    Tests pass their own sink (any object with write(text)) instead of stdout.
    """
    if sink is None:
        sink = LogSink()

    app = FastAPI()

    @app.api_route("/", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    def index():
        # Logging must never fail the request
        try:
            write_entry(sink, entry_factory())
        except Exception:
            logger.exception("Failed to write log entry")

        return PlainTextResponse("Hello Logger!\n")

    return app


app = create_app()


if __name__ == "__main__":
    configure_logging()
    port = get_port()
    logger.info("Listening on port %s", port)
    # uvicorn exits the process if it can't bind; there is no fallback port
    uvicorn.run(app, host="0.0.0.0", port=port)
