# Copyright 2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import copy
import os
from unittest.mock import Mock, patch

from hamcrest import assert_that, calling, equal_to, has_length, instance_of, raises
from twisted.python import usage
from twisted.trial import unittest

from tftpd.config import _DEFAULT_CONFIG, Options
from tftpd.console import ConsoleService
from tftpd.main import TFTPService, TFTPServiceMaker
from tftpd.servers.tftp import WorkingDirectoryError


class TestTFTPService(unittest.TestCase):
    def setUp(self) -> None:
        self.data_dir = os.path.abspath(self.mktemp())
        self.config = copy.deepcopy(_DEFAULT_CONFIG)
        self.config['general'].update(
            data_dir=self.data_dir, port=6969, interface='127.0.0.1'
        )

    @patch('tftpd.main.internet.UDPServer')
    def test_privileged_start_bind_port_and_create_directory(self, udp_server) -> None:
        service = TFTPService(self.config)

        service.privilegedStartService()

        assert_that(os.path.isdir(self.data_dir), equal_to(True))
        udp_server.assert_called_once_with(
            6969, service.tftp_protocol, interface='127.0.0.1'
        )
        udp_server.return_value.privilegedStartService.assert_called_once_with()

    @patch('tftpd.main.internet.UDPServer')
    def test_unusable_directory_abort_start(self, udp_server) -> None:
        with open(self.data_dir, 'wb'):
            pass
        service = TFTPService(self.config)

        assert_that(
            calling(service.privilegedStartService), raises(WorkingDirectoryError)
        )
        udp_server.assert_not_called()

    @patch('tftpd.main.internet.UDPServer')
    def test_stop_service_raise_stop_signal(self, udp_server) -> None:
        service = TFTPService(self.config)
        service.privilegedStartService()
        service.startService()

        result = service.stopService()

        assert_that(service.stop_signal.is_set(), equal_to(True))
        assert_that(result, equal_to(udp_server.return_value.stopService.return_value))

    def test_stop_can_be_called_many_times(self) -> None:
        service = TFTPService(self.config)

        service.stop()
        service.stop()
        result = service.stopService()

        assert_that(service.stop_signal.is_set(), equal_to(True))
        assert_that(result, equal_to(None))

    def test_max_transfers_is_given_to_protocol(self) -> None:
        self.config['general']['max_transfers'] = 3

        service = TFTPService(self.config)

        assert_that(service.tftp_protocol._max_transfers, equal_to(3))


@patch('tftpd.main.setup_logging', Mock())
class TestTFTPServiceMaker(unittest.TestCase):
    def setUp(self) -> None:
        self.config_file = os.path.abspath(self.mktemp())
        self.maker = TFTPServiceMaker()

    def _options(self, *args: str) -> Options:
        options = Options()
        options.parseOptions(['-s', '-f', self.config_file, *args])
        return options

    def test_make_service(self) -> None:
        top_service = self.maker.makeService(self._options('-p', '1069'))

        services = list(top_service)
        assert_that(services, has_length(1))
        assert_that(services[0], instance_of(TFTPService))

    def test_make_service_with_console(self) -> None:
        top_service = self.maker.makeService(self._options('-c'))

        services = list(top_service)
        assert_that(services, has_length(2))
        assert_that(services[1], instance_of(ConsoleService))

    def test_invalid_config_raise_usage_error(self) -> None:
        assert_that(
            calling(self.maker.makeService).with_args(
                self._options('--max-transfers', '-1')
            ),
            raises(usage.UsageError),
        )
