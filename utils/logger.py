import logging
import sys

_logging_configured = False


def setup_logging(debug: bool = False):
    global _logging_configured
    level = logging.DEBUG if debug else logging.INFO
    if _logging_configured:
        logging.getLogger().setLevel(level)
        return

    logging.basicConfig(
        level=level,
        format='[%(asctime)s] %(levelname)s in %(module)s: %(message)s',
        stream=sys.stdout,
        force=True
    )

    # request-level chatter from the HTTP stack
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str):
    """Get a named logger, configuring the root handler on first use."""
    setup_logging()
    return logging.getLogger(name)
