import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level="INFO"):
    """Configure root logging once per process."""
    global _configured
    if _configured:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True
