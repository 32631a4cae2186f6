# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""Manage the transfer between two host."""
from __future__ import annotations

import logging
from collections.abc import Callable

from twisted.internet import defer
from twisted.internet.protocol import DatagramProtocol

from tftpd.servers.tftp.packet import (
    BLKSIZE,
    ERR_ALLOC,
    ERR_FEXIST,
    ERR_FNF,
    ERR_ILL,
    ERR_UNKNWN_TID,
    MAX_DGRAM_SIZE,
    PacketError,
    build_ack,
    build_data,
    is_last_block,
    parse_ack,
    parse_data,
)
from tftpd.servers.tftp.service import TFTPDirectoryService
from tftpd.synchro import StopSignal

logger = logging.getLogger(__name__)

Address = tuple[str, int]
ErrorSender = Callable[[int, Address], None]
EventSink = Callable[[str], None]

# block numbers are never wrapped
MAX_FILE_SIZE = 0xFFFF * BLKSIZE


class _AbstractConnection(DatagramProtocol):
    """Represent a transfer from the point of view of the server.

    A connection listens on its own ephemeral port for its whole life. Errors
    are never written on that port: they go through send_error, which writes
    on the server's well-known port.

    The '_start' method MUST be overridden in derived class. It is called once
    the ephemeral port is bound.

    The '_handle_dgram' method MUST be overridden in derived class. It is
    called with every datagram coming from the remote host, and may raise
    PacketError if the datagram is not the one expected.

    The '_close' method MAY be overridden in derived class. It will be called
    once after the connection is closed, in any circumstances.

    The 'done' deferred fires with True once the transfer completed, or with
    False if it was aborted.

    """

    direction: str

    def __init__(
        self,
        addr: Address,
        path: str,
        files: TFTPDirectoryService,
        stop_signal: StopSignal,
        send_error: ErrorSender,
        log: EventSink,
    ) -> None:
        """Create a new transfer with a remote host.

        addr -- the (host, port) of the remote host, i.e. its TID
        path -- the resolved path of the file to transfer
        send_error -- writes an error packet on the well-known port

        """
        self._addr = addr
        self._path = path
        self._files = files
        self._stop_signal = stop_signal
        self._send_error = send_error
        self._log = log
        self._closed = False
        self._completed = False
        self.done: defer.Deferred[bool] = defer.Deferred()

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} {self.direction} {self._addr!r}>'

    @property
    def addr(self) -> Address:
        return self._addr

    @property
    def path(self) -> str:
        return self._path

    def _start(self) -> None:
        raise NotImplementedError('Must be implemented in derived class')

    def _handle_dgram(self, dgram: bytes) -> None:
        raise NotImplementedError('Must be implemented in derived class')

    def _close(self) -> None:
        """Called once and only once. MAY be overridden in derived class."""
        pass

    def _do_close(self) -> None:
        """Cleanup and make sure self._close is called once."""
        if not self._closed:
            self._closed = True
            try:
                self._close()
            finally:
                # the transport is already gone when the port is being stopped
                if self.transport is not None:
                    self.transport.stopListening()
                self.done.callback(self._completed)

    def _complete(self) -> None:
        self._completed = True
        self._do_close()

    def _abort(self, errcode: int) -> None:
        self._send_error(errcode, self._addr)
        self._do_close()

    def _stopped(self) -> bool:
        if self._stop_signal.is_set():
            logger.info('Server is stopping, abandoning %r', self)
            self._do_close()
            return True
        return False

    def startProtocol(self) -> None:
        if not self._stopped():
            self._start()

    def stopProtocol(self) -> None:
        self._do_close()

    def datagramReceived(self, dgram: bytes, addr: Address) -> None:
        if self._closed or self._stopped():
            return

        if addr != self._addr:
            logger.info('Datagram received with wrong TID from %s', addr)
            self._send_error(ERR_UNKNWN_TID, addr)
            return

        try:
            self._handle_dgram(dgram)
        except PacketError as e:
            logger.info('Received an unexpected datagram from %s: %s', addr, e)
            self._abort(ERR_ILL)
        except Exception:
            logger.error('Error while handling datagram from %s', addr, exc_info=True)
            self._do_close()


class ReadConnection(_AbstractConnection):
    """Send a file to the remote host (RRQ)."""

    direction = 'send'

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._content = b''
        self._offset = 0
        self._blk_no = 1

    def _start(self) -> None:
        if not self._files.is_readable_file(self._path):
            self._log(f'File {self._path} not found for {self._addr!r}')
            self._abort(ERR_FNF)
            return

        try:
            self._content = self._files.read(self._path)
        except OSError as e:
            logger.warning('Could not read %s: %s', self._path, e)
            self._abort(ERR_FNF)
            return

        if len(self._content) > MAX_FILE_SIZE:
            logger.warning('File %s is too large to be transferred', self._path)
            self._abort(ERR_ALLOC)
            return

        self._send_block()

    def _current_block(self) -> bytes:
        return self._content[self._offset : self._offset + BLKSIZE]

    def _send_block(self) -> None:
        block = self._current_block()
        self.transport.write(build_data(self._blk_no, block), self._addr)
        self._log(f'Sent block {self._blk_no} ({len(block)} bytes) to {self._addr!r}')

    def _handle_dgram(self, dgram: bytes) -> None:
        pkt = parse_ack(dgram)
        if pkt['blkno'] != self._blk_no:
            logger.info(
                'Expected ACK for block %d, received block %d',
                self._blk_no,
                pkt['blkno'],
            )
            self._abort(ERR_ALLOC)
            return

        self._offset += len(self._current_block())
        if self._offset >= len(self._content):
            self._log(f'File {self._path} sent to {self._addr!r}')
            self._complete()
        else:
            self._blk_no += 1
            self._send_block()


class WriteConnection(_AbstractConnection):
    """Receive a file from the remote host (WRQ).

    The file is kept in memory and only created once the last block has been
    received. An aborted upload leaves nothing on disk.

    """

    direction = 'receive'

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._blocks: list[bytes] = []

    def _start(self) -> None:
        if self._files.exists(self._path):
            self._log(f'File {self._path} already exists for {self._addr!r}')
            self._abort(ERR_FEXIST)
            return

        self._send_ack(0)

    def _send_ack(self, blk_no: int) -> None:
        self.transport.write(build_ack(blk_no), self._addr)
        self._log(f'Sent ACK {blk_no} to {self._addr!r}')

    def _handle_dgram(self, dgram: bytes) -> None:
        if len(dgram) > MAX_DGRAM_SIZE:
            raise PacketError('datagram too large')
        pkt = parse_data(dgram)
        self._log(
            f'Received block {pkt["blkno"]} ({len(pkt["data"])} bytes) '
            f'from {self._addr!r}'
        )
        self._blocks.append(pkt['data'])
        self._send_ack(pkt['blkno'])

        if is_last_block(pkt['data']):
            self._store()

    def _store(self) -> None:
        try:
            self._files.create(self._path, b''.join(self._blocks))
        except OSError as e:
            logger.error('Could not write %s: %s', self._path, e)
            self._abort(ERR_ALLOC)
        else:
            self._log(f'File {self._path} received from {self._addr!r}')
            self._complete()

    def _close(self) -> None:
        self._blocks = []
