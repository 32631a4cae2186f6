# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging

from twisted.internet import reactor
from twisted.internet.error import CannotListenError
from twisted.internet.protocol import DatagramProtocol

from tftpd.servers.tftp.connection import (
    Address,
    EventSink,
    ReadConnection,
    WriteConnection,
    _AbstractConnection,
)
from tftpd.servers.tftp.packet import (
    ERR_ALLOC,
    ERR_ILL,
    ERROR_MESSAGES,
    Opcode,
    PacketError,
    RequestPacket,
    build_error,
    parse_request,
)
from tftpd.servers.tftp.service import TFTPDirectoryService
from tftpd.synchro import StopSignal

logger = logging.getLogger(__name__)


class TFTPProtocol(DatagramProtocol):
    """Dispatch the requests received on the well-known port.

    Every accepted request gets its own connection, listening on an
    ephemeral port, so that the transfers run independently of each other
    and of the dispatcher.

    """

    def __init__(
        self,
        files: TFTPDirectoryService,
        stop_signal: StopSignal,
        log: EventSink | None = None,
        max_transfers: int | None = None,
    ) -> None:
        self._files = files
        self._stop_signal = stop_signal
        self._log = log or logger.info
        self._max_transfers = max_transfers
        self._transfers: set[_AbstractConnection] = set()

    @property
    def transfers(self) -> frozenset[_AbstractConnection]:
        return frozenset(self._transfers)

    def send_error(self, errcode: int, addr: Address) -> None:
        self.transport.write(build_error(errcode), addr)
        errmsg = ERROR_MESSAGES[errcode].decode('ascii')
        self._log(f'Sent error {errcode} ({errmsg}) to {addr!r}')

    def _new_connection(
        self, pkt: RequestPacket, path: str, addr: Address
    ) -> _AbstractConnection:
        if pkt['opcode'] == Opcode.RRQ:
            connection_class = ReadConnection
        else:
            connection_class = WriteConnection
        return connection_class(
            addr, path, self._files, self._stop_signal, self.send_error, self._log
        )

    def _transfer_done(self, completed: bool, connection: _AbstractConnection) -> bool:
        self._transfers.discard(connection)
        logger.debug(
            '%r %s, %d transfer(s) left',
            connection,
            'completed' if completed else 'aborted',
            len(self._transfers),
        )
        return completed

    def _start_transfer(self, connection: _AbstractConnection) -> None:
        try:
            reactor.listenUDP(0, connection)
        except CannotListenError as e:
            logger.error('Could not bind a port for %r: %s', connection, e)
            self.send_error(ERR_ALLOC, connection.addr)
            return
        self._transfers.add(connection)
        connection.done.addCallback(self._transfer_done, connection)

    def _handle_request(self, pkt: RequestPacket, addr: Address) -> None:
        path = self._files.resolve(pkt['filename'])
        if path is None:
            logger.warning('Rejecting filename %r from %s', pkt['filename'], addr)
            self.send_error(ERR_ILL, addr)
            return

        if (
            self._max_transfers is not None
            and len(self._transfers) >= self._max_transfers
        ):
            logger.warning(
                'Rejecting request from %s: %d transfers in progress',
                addr,
                len(self._transfers),
            )
            self.send_error(ERR_ALLOC, addr)
            return

        self._start_transfer(self._new_connection(pkt, path, addr))

    def datagramReceived(self, dgram: bytes, addr: Address) -> None:
        if self._stop_signal.is_set():
            logger.debug('Server is stopping, ignoring datagram from %s', addr)
            return

        try:
            pkt = parse_request(dgram)
        except PacketError as e:
            logger.info('Received invalid TFTP request from %s: %s', addr, e)
            self.send_error(ERR_ILL, addr)
        else:
            self._log(
                f'TFTP {pkt["opcode"].name} from {addr!r} - '
                f'filename {pkt["filename"]!r} - mode {pkt["mode"]!r}'
            )
            self._handle_request(pkt, addr)
