# Copyright 2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""Stop the server from its standard input."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from twisted.application.service import Service
from twisted.internet import reactor, stdio
from twisted.protocols.basic import LineReceiver

if TYPE_CHECKING:
    from tftpd.main import TFTPService

logger = logging.getLogger(__name__)

STOP_COMMAND = b'--stop'


class StopCommandProtocol(LineReceiver):
    """Call on_stop once, on the stop command or at the end of the input."""

    delimiter = b'\n'

    def __init__(self, on_stop: Callable[[], None]) -> None:
        self._on_stop = on_stop
        self._stopped = False

    def _stop(self) -> None:
        if not self._stopped:
            self._stopped = True
            self._on_stop()

    def lineReceived(self, line: bytes) -> None:
        command = line.strip()
        if command.startswith(STOP_COMMAND):
            logger.info('Stop command received')
            self._stop()
        elif command:
            logger.info('Unknown command %r, use %r', command, STOP_COMMAND)

    def connectionLost(self, reason=None) -> None:
        logger.info('End of standard input')
        self._stop()


class ConsoleService(Service):
    def __init__(self, tftp_service: TFTPService) -> None:
        self._tftp_service = tftp_service
        self._stdio: stdio.StandardIO | None = None

    def _on_stop(self) -> None:
        # closing standard input in stopService ends up here too
        if not self.running:
            return
        self._tftp_service.stop()
        if reactor.running:
            reactor.stop()

    def startService(self) -> None:
        self._stdio = stdio.StandardIO(StopCommandProtocol(self._on_stop))
        Service.startService(self)

    def stopService(self) -> None:
        Service.stopService(self)
        if self._stdio is not None:
            self._stdio.loseConnection()
            self._stdio = None
