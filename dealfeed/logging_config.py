# dealfeed/logging_config.py
import logging


def init_logging(service_name: str = "deal-feed", level: str = "INFO"):
    log_format = (
        "%(asctime)s | "
        + service_name + " | "
        "%(levelname)s | "
        "%(name)s | "
        "%(message)s"
    )

    root = logging.getLogger()
    if root.handlers:
        for h in root.handlers[:]:
            root.removeHandler(h)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=log_format,
    )

    logging.getLogger(__name__).info("Logging initialized")
