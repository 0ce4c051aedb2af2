import logging

from tqdm import tqdm

from . import formatter


class TqdmLoggingHandler(logging.Handler):
    """Logging handler that writes through `tqdm.write`, so that records
    emitted while a progress bar is running do not break the bar.

    Usage:

        >>> from hhocore import logger
        >>> from hhocore.logs import TqdmLoggingHandler
        >>> logger.handlers = [TqdmLoggingHandler()]
    """
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)
        self.setFormatter(formatter)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg)
            self.flush()
        except Exception:
            self.handleError(record)
