import logging
from miraverse.core.config import settings

def setup_logging():
    level = logging.DEBUG if settings.ENV != "prod" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # httpx logs every request at INFO, including URLs with api keys in the query string
    logging.getLogger("httpx").setLevel(logging.WARNING)
