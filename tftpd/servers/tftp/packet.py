# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""Low-level functions to manipulate packets and datagrams.

A packet is a dictionary object. A dgram (datagram) is a bytes object.

"""
from __future__ import annotations

import struct
from enum import IntEnum
from typing import TypedDict

BLKSIZE = 512
# opcode + block number + a full block
MAX_DGRAM_SIZE = BLKSIZE + 4


class Opcode(IntEnum):
    RRQ = 1
    WRQ = 2
    DATA = 3
    ACK = 4
    ERROR = 5
    # never sent, only received and rejected
    UNKNOWN = -1


ERR_FNF = 1  # File not found
ERR_ALLOC = 3  # Disk full or allocation exceeded
ERR_ILL = 4  # Illegal TFTP operation
ERR_UNKNWN_TID = 5  # Unknown transfer ID
ERR_FEXIST = 6  # File already exists

ERROR_MESSAGES: dict[int, bytes] = {
    ERR_FNF: b'File not found.',
    ERR_ALLOC: b'Disk full or allocation exceeded.',
    ERR_ILL: b'Illegal TFTP operation.',
    ERR_UNKNWN_TID: b'Unknown transfer ID.',
    ERR_FEXIST: b'File already exists.',
}


class BasePacket(TypedDict):
    opcode: Opcode


class RequestPacket(BasePacket):
    filename: bytes
    # opaque, neither parsed nor validated
    mode: bytes


class DataPacket(BasePacket):
    blkno: int
    data: bytes


class AckPacket(BasePacket):
    blkno: int


class PacketError(Exception):
    """Raise when a problem with parsing/building a datagram arise."""


class IllegalOperationError(PacketError):
    """Raise when a datagram does not carry the expected opcode."""

    def __init__(self, expected: Opcode, received: Opcode) -> None:
        super().__init__(f'expected {expected.name}, received {received.name}')
        self.expected = expected
        self.received = received


_UINT16_STRUCT = struct.Struct('!H')


def _pack_from_uint16(n: int) -> bytes:
    try:
        return _UINT16_STRUCT.pack(n)
    except struct.error:
        raise PacketError(f'{n} is not an unsigned 16-bit value')


def _unpack_to_uint16(data: bytes) -> int:
    return _UINT16_STRUCT.unpack(data)[0]


def decode_opcode(data: bytes) -> Opcode:
    """Return the opcode encoded in a 2-byte string.

    Raise a PacketError if data is not exactly 2 bytes long. Unmapped values
    are returned as Opcode.UNKNOWN.

    """
    if len(data) != 2:
        raise PacketError('opcode must be 2 bytes long')
    value = _unpack_to_uint16(data)
    try:
        return Opcode(value)
    except ValueError:
        return Opcode.UNKNOWN


def _check_opcode(dgram: bytes, expected: Opcode) -> None:
    if len(dgram) < 4:
        raise PacketError('too small')
    opcode = decode_opcode(dgram[:2])
    if opcode != expected:
        raise IllegalOperationError(expected, opcode)


def parse_request(dgram: bytes) -> RequestPacket:
    """Return a request packet from a read or write request datagram.

    The filename is the null-terminated field following the opcode. Raise a
    PacketError if the opcode is not RRQ or WRQ, or if the filename is empty,
    not ASCII or not terminated within the datagram.

    """
    opcode = decode_opcode(dgram[:2]) if len(dgram) >= 2 else Opcode.UNKNOWN
    if opcode not in (Opcode.RRQ, Opcode.WRQ):
        raise PacketError('invalid request opcode')

    end = dgram.find(b'\x00', 2)
    if end == -1:
        raise PacketError('filename not null-terminated')
    filename = dgram[2:end]
    if not filename:
        raise PacketError('empty filename')
    if not filename.isascii():
        raise PacketError('filename is not ASCII')
    return {'opcode': opcode, 'filename': filename, 'mode': dgram[end + 1 :]}


def parse_data(dgram: bytes) -> DataPacket:
    _check_opcode(dgram, Opcode.DATA)
    return {
        'opcode': Opcode.DATA,
        'blkno': _unpack_to_uint16(dgram[2:4]),
        'data': dgram[4:],
    }


def parse_ack(dgram: bytes) -> AckPacket:
    _check_opcode(dgram, Opcode.ACK)
    return {'opcode': Opcode.ACK, 'blkno': _unpack_to_uint16(dgram[2:4])}


def build_data(blk_no: int, data: bytes) -> bytes:
    if len(data) > BLKSIZE:
        raise PacketError(f'data longer than {BLKSIZE} bytes')
    return _pack_from_uint16(Opcode.DATA) + _pack_from_uint16(blk_no) + data


def build_ack(blk_no: int) -> bytes:
    return _pack_from_uint16(Opcode.ACK) + _pack_from_uint16(blk_no)


def build_error(errcode: int) -> bytes:
    """Return an error datagram for one of the ERR_* codes.

    The message is the fixed message of the code. No null byte is appended
    after the message.

    """
    try:
        errmsg = ERROR_MESSAGES[errcode]
    except KeyError:
        raise PacketError(f'unknown error code {errcode}')
    return _pack_from_uint16(Opcode.ERROR) + _pack_from_uint16(errcode) + errmsg


def is_last_block(data: bytes) -> bool:
    return len(data) < BLKSIZE
