import logging
import sys

from schema import LogEntry

# Structured lines go to stdout, where the platform's log agent picks them up
# and parses each JSON line into a Cloud Logging entry.
# Diagnostics about the app itself go to stderr under the "logger" tree.
diagnostics = logging.getLogger("logger")


class LogSink:
    """
    Process-wide destination for structured log lines.
    Anything with a write(text) method can stand in for it (sys.stdout, io.StringIO).
    """

    def __init__(self, stream=None, name="structured"):
        # Kept out of the logging.getLogger registry: each sink owns its stream,
        # and diagnostic configuration never reaches the structured lines.
        self.logger = logging.Logger(name, logging.INFO)
        self.logger.propagate = False

        handler = logging.StreamHandler(stream or sys.stdout)
        # No prefix: a timestamp or level in front stops the line parsing as JSON
        handler.setFormatter(logging.Formatter("%(message)s"))
        # Callers supply the newline
        handler.terminator = ""
        self.logger.addHandler(handler)

    def write(self, text: str) -> None:
        self.logger.info(text)


def configure_logging(level="INFO"):
    """Send diagnostic messages to stderr in a human-readable format."""
    diagnostics.setLevel(level)
    if not diagnostics.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        diagnostics.addHandler(handler)


def write_entry(sink, entry: LogEntry) -> None:
    """
    Emits one structured log line.
    A failed serialization still writes the newline, so the sink sees a blank line.
    """
    sink.write(entry.to_json() + "\n")
