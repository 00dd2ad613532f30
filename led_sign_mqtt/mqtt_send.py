"""Send a message, power or brightness command to the LED sign.

Usage:
    led-sign-mqtt -m "Hello World"
    led-sign-mqtt -p on
    led-sign-mqtt -b 10
"""

import logging
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from .broker import broker_from_config
from .commands import build_request, parse_directive, usage_text
from .config import ENV_PATH, load_config
from .errors import BrokerUrlError, DirectiveError, MissingDirective
from .publisher import PublishSession

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


class _BelowWarning(logging.Filter):
    def filter(self, record):
        return record.levelno < logging.WARNING


def setup_logging(level=logging.INFO):
    """Progress lines to stdout, warnings and errors to stderr"""
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_BelowWarning())
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)

    # Remove all handlers associated with the root logger object.
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[stdout_handler, stderr_handler]
    )


def _install_signal_handlers(session: PublishSession):
    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        session.abort(f"Interrupted by signal {signum}")

    previous = {}
    for signum in (signal.SIGTERM, signal.SIGINT):
        previous[signum] = signal.signal(signum, _signal_handler)
    return previous


def main(argv: Optional[List[str]] = None, env_path: Path = ENV_PATH) -> int:
    launched = time.monotonic()
    setup_logging()
    if argv is None:
        argv = sys.argv[1:]

    config = load_config(env_path)

    try:
        directive = parse_directive(argv)
    except MissingDirective:
        print(usage_text(config), file=sys.stderr)
        return 1
    except DirectiveError as e:
        logger.error(f"Error: {e}")
        return 1

    request = build_request(config, directive)
    try:
        broker = broker_from_config(config)
    except BrokerUrlError as e:
        logger.error(f"✗ Connection error: {e}")
        return 1

    session = PublishSession(request, broker, keepalive=config.keepalive, started_at=launched)
    previous = _install_signal_handlers(session)
    try:
        return session.run()
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
