# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import unittest

from hamcrest import assert_that, calling, equal_to, has_entries, raises

from tftpd.servers.tftp.packet import (
    ERR_ALLOC,
    ERR_FEXIST,
    ERR_FNF,
    ERR_ILL,
    ERR_UNKNWN_TID,
    IllegalOperationError,
    Opcode,
    PacketError,
    build_ack,
    build_data,
    build_error,
    decode_opcode,
    is_last_block,
    parse_ack,
    parse_data,
    parse_request,
)


class TestOpcode(unittest.TestCase):
    def test_decode_known_opcodes(self) -> None:
        expected = {
            b'\x00\x01': Opcode.RRQ,
            b'\x00\x02': Opcode.WRQ,
            b'\x00\x03': Opcode.DATA,
            b'\x00\x04': Opcode.ACK,
            b'\x00\x05': Opcode.ERROR,
        }
        for data, opcode in expected.items():
            assert_that(decode_opcode(data), equal_to(opcode))

    def test_decode_unmapped_values_yield_unknown(self) -> None:
        for data in (b'\x00\x00', b'\x00\x06', b'\x00\xff', b'\x01\x01', b'\xff\xff'):
            assert_that(decode_opcode(data), equal_to(Opcode.UNKNOWN))

    def test_decode_wrong_size_raise_packeterror(self) -> None:
        assert_that(calling(decode_opcode).with_args(b''), raises(PacketError))
        assert_that(calling(decode_opcode).with_args(b'\x00'), raises(PacketError))
        assert_that(
            calling(decode_opcode).with_args(b'\x00\x01\x00'), raises(PacketError)
        )


class TestParseRequest(unittest.TestCase):
    def test_parse_valid_rrq_dgram_correctly(self) -> None:
        self.assertEqual(
            {'opcode': Opcode.RRQ, 'filename': b'foo', 'mode': b'octet\x00'},
            parse_request(b'\x00\x01foo\x00octet\x00'),
        )

    def test_parse_valid_wrq_dgram_correctly(self) -> None:
        pkt = parse_request(b'\x00\x02dir/bar.txt\x00netascii\x00')

        assert_that(pkt, has_entries(opcode=Opcode.WRQ, filename=b'dir/bar.txt'))

    def test_mode_is_not_validated(self) -> None:
        pkt = parse_request(b'\x00\x01foo\x00')

        assert_that(pkt, has_entries(filename=b'foo', mode=b''))

    def test_parse_invalid_rrq_yield_packeterror(self) -> None:
        self.assertRaises(PacketError, parse_request, b'\x00\x01fname')
        self.assertRaises(PacketError, parse_request, b'')
        self.assertRaises(PacketError, parse_request, b'\x01')
        self.assertRaises(PacketError, parse_request, b'\x00\x01')
        self.assertRaises(PacketError, parse_request, b'\x00\x01\x00octet\x00')
        self.assertRaises(PacketError, parse_request, b'\x00\x01f\xe9\x00octet\x00')

    def test_parse_non_request_opcode_yield_packeterror(self) -> None:
        for dgram in (
            b'\x00\x03foo\x00octet\x00',
            b'\x00\x04\x00\x01',
            b'\x00\x05\x00\x01oops',
            b'\x00\x09foo\x00octet\x00',
        ):
            self.assertRaises(PacketError, parse_request, dgram)


class TestDataPacket(unittest.TestCase):
    def test_build_data(self) -> None:
        assert_that(
            build_data(10, b'\x00\x01\x02'),
            equal_to(b'\x00\x03\x00\x0a\x00\x01\x02'),
        )

    def test_build_then_parse_keep_block_and_payload(self) -> None:
        for size in (0, 1, 511, 512):
            payload = bytes(range(256)) * 2
            payload = payload[:size]

            pkt = parse_data(build_data(258, payload))

            assert_that(pkt, has_entries(blkno=258, data=payload))

    def test_build_data_too_large_raise_packeterror(self) -> None:
        assert_that(calling(build_data).with_args(1, b'x' * 513), raises(PacketError))

    def test_build_data_invalid_block_number_raise_packeterror(self) -> None:
        assert_that(calling(build_data).with_args(65536, b''), raises(PacketError))
        assert_that(calling(build_data).with_args(-1, b''), raises(PacketError))

    def test_parse_data_with_wrong_opcode_raise_illegal_operation(self) -> None:
        assert_that(
            calling(parse_data).with_args(b'\x00\x04\x00\x01'),
            raises(IllegalOperationError),
        )

    def test_parse_data_too_small_raise_packeterror(self) -> None:
        assert_that(calling(parse_data).with_args(b'\x00\x03\x00'), raises(PacketError))

    def test_last_block(self) -> None:
        assert_that(is_last_block(b''), equal_to(True))
        assert_that(is_last_block(b'x' * 511), equal_to(True))
        assert_that(is_last_block(b'x' * 512), equal_to(False))


class TestAckPacket(unittest.TestCase):
    def test_build_ack(self) -> None:
        assert_that(build_ack(17), equal_to(b'\x00\x04\x00\x11'))
        assert_that(build_ack(0), equal_to(b'\x00\x04\x00\x00'))

    def test_parse_ack(self) -> None:
        assert_that(
            parse_ack(b'\x00\x04\x01\x02'),
            equal_to({'opcode': Opcode.ACK, 'blkno': 258}),
        )

    def test_parse_ack_with_wrong_opcode_raise_illegal_operation(self) -> None:
        assert_that(
            calling(parse_ack).with_args(b'\x00\x03\x00\x01data'),
            raises(IllegalOperationError),
        )
        assert_that(
            calling(parse_ack).with_args(b'\x00\x05\x00\x01oops'),
            raises(IllegalOperationError),
        )


class TestErrorPacket(unittest.TestCase):
    def test_build_error_has_no_trailing_null_byte(self) -> None:
        assert_that(
            build_error(ERR_FNF),
            equal_to(b'\x00\x05\x00\x01File not found.'),
        )

    def test_build_every_error(self) -> None:
        expected = {
            ERR_ALLOC: b'Disk full or allocation exceeded.',
            ERR_ILL: b'Illegal TFTP operation.',
            ERR_UNKNWN_TID: b'Unknown transfer ID.',
            ERR_FEXIST: b'File already exists.',
        }
        for errcode, errmsg in expected.items():
            assert_that(
                build_error(errcode),
                equal_to(b'\x00\x05\x00' + bytes([errcode]) + errmsg),
            )

    def test_build_unknown_error_raise_packeterror(self) -> None:
        assert_that(calling(build_error).with_args(0), raises(PacketError))
        assert_that(calling(build_error).with_args(2), raises(PacketError))
