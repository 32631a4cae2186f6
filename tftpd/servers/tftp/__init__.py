# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""A TFTP server implementation with twisted.

The implementation follows RFC1350 (The TFTP protocol) closely enough
for most clients, with a few deliberate differences.

Things to note:
- both read requests (RRQ) and write requests (WRQ) are supported.
- the mode field of requests is ignored: files are transferred as is.
- there is no support for TFTP options (RFC2347) -- the block size is
  always 512 bytes.
- the transfer of a file which size is a multiple of 512 bytes ends with
  its last full block -- no empty block is sent after it.
- block numbers don't wrap around, so files are limited to 65535 blocks.
- there is no timeout and no retransmission: a transfer waits for the
  remote host for as long as the server runs.
- an ACK with an unexpected block number aborts the transfer with a
  "disk full or allocation exceeded" error.

"""

from tftpd.servers.tftp.proto import TFTPProtocol
from tftpd.servers.tftp.service import TFTPDirectoryService, WorkingDirectoryError

__all__ = ['TFTPProtocol', 'TFTPDirectoryService', 'WorkingDirectoryError']
