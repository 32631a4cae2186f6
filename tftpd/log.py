# Copyright 2016-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable

DEFAULT_LOG_FORMAT = '%(asctime)s [%(process)d] (%(levelname)s) (%(name)s): %(message)s'
TRANSFER_LOGGER_NAME = 'tftpd.transfers'


def setup_logging(
    log_file: str | None, debug: bool = False, log_format: str = DEFAULT_LOG_FORMAT
) -> None:
    """Send every log record to log_file, or to stderr if log_file is None."""
    handler: logging.Handler
    if log_file is None:
        handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(log_format))

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)


def silence_loggers(logger_names: Iterable[str], level: int) -> None:
    for name in logger_names:
        logging.getLogger(name).setLevel(level)


def _discard(msg: str) -> None:
    pass


def transfer_event_sink(enabled: bool = True):
    """Return the callable transfers log their events with."""
    if not enabled:
        return _discard
    return logging.getLogger(TRANSFER_LOGGER_NAME).info
