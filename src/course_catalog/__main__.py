"""Command line entrypoint."""

from __future__ import annotations

import logging
import sys
from uuid import uuid4

from course_catalog.infrastructure.logging_config import configure_logging
from course_catalog.presentation.cli.app import run

LOGGER = logging.getLogger(__name__)


def main() -> int:
    """Run one catalog command."""
    configure_logging()
    try:
        return run(sys.argv[1:])
    except Exception:
        correlation_id = str(uuid4())
        LOGGER.exception("event=cli_unhandled_error correlation_id=%s", correlation_id)
        print(f"unexpected failure. correlation_id={correlation_id}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
