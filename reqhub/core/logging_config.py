import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # python-multipart logs every parsed form part at DEBUG
    logging.getLogger("multipart").setLevel(logging.WARNING)
