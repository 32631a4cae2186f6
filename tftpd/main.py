# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from twisted.application import internet
from twisted.application.service import IServiceMaker, MultiService, Service
from twisted.internet import reactor
from twisted.internet.defer import Deferred
from twisted.internet.error import CannotListenError
from twisted.logger import STDLibLogObserver, globalLogBeginner
from twisted.plugin import IPlugin
from twisted.python import usage
from zope.interface import implementer

import tftpd.config
from tftpd.config import ConfigError, Options
from tftpd.console import ConsoleService
from tftpd.log import setup_logging, silence_loggers, transfer_event_sink
from tftpd.servers.tftp import (
    TFTPDirectoryService,
    TFTPProtocol,
    WorkingDirectoryError,
)
from tftpd.synchro import StopSignal

if TYPE_CHECKING:
    from .config import TFTPDConfigDict


logger = logging.getLogger(__name__)

LOG_FILE_NAME = '/var/log/tftpd.log'


# given in command line to redirect logs to standard logging
def twistd_logs() -> Callable[[dict[str, Any]], None]:
    return STDLibLogObserver()


class TFTPService(Service):
    """Own the well-known port and the stop signal of the server.

    Binding the port and preparing the working directory happen in
    privilegedStartService; a failure of either one aborts the start of the
    application.

    """

    def __init__(self, config: TFTPDConfigDict) -> None:
        self._config = config
        general = config['general']
        self.stop_signal = StopSignal()
        self.files = TFTPDirectoryService(general['data_dir'])
        self.tftp_protocol = TFTPProtocol(
            self.files,
            self.stop_signal,
            log=transfer_event_sink(general['log_transfers']),
            max_transfers=general['max_transfers'],
        )
        self._udp_server: internet.UDPServer | None = None

    def privilegedStartService(self) -> None:
        general = self._config['general']
        self.files.ensure_directory()
        logger.info('Serving files from %s', self.files.path)

        port = general['port']
        interface = general['interface']
        logger.info('Binding TFTP service to "%s:%s"', interface, port)
        self._udp_server = internet.UDPServer(
            port, self.tftp_protocol, interface=interface
        )
        self._udp_server.privilegedStartService()
        Service.privilegedStartService(self)

    def stop(self) -> None:
        """Raise the stop signal, unless it has already been raised."""
        if not self.stop_signal.is_set():
            logger.info('Stopping TFTP service')
            self.stop_signal.set()

    def stopService(self) -> Deferred | None:
        self.stop()
        Service.stopService(self)
        if self._udp_server is None:
            return None
        return self._udp_server.stopService()


@implementer(IServiceMaker, IPlugin)
class TFTPServiceMaker:
    tapname = 'tftpd'
    description = 'A TFTP server.'
    options = tftpd.config.Options

    def _configure_logging(self, options: Options) -> None:
        if options['stderr']:
            log_file = None
        else:
            log_file = options['log-file'] or LOG_FILE_NAME
        setup_logging(log_file, debug=options['verbose'])
        if not options['verbose']:
            silence_loggers(['twisted'], logging.WARNING)

    def _read_config(self, options: Options) -> TFTPDConfigDict:
        logger.info('Reading application configuration')
        try:
            return tftpd.config.get_config(options)
        except ConfigError as e:
            raise usage.UsageError(str(e))

    def makeService(self, options: Options) -> MultiService:
        self._configure_logging(options)

        config = self._read_config(options)
        top_service = MultiService()

        # check config for verbosity
        if config['general']['verbose']:
            logging.getLogger().setLevel(logging.DEBUG)

        tftp_service = TFTPService(config)
        tftp_service.setServiceParent(top_service)

        if config['general']['console']:
            console_service = ConsoleService(tftp_service)
            console_service.setServiceParent(top_service)

        return top_service


def main(argv: list[str] | None = None) -> None:
    """Run the server in the foreground, without twistd."""
    options = Options()
    try:
        options.parseOptions(argv)
        service = TFTPServiceMaker().makeService(options)
    except usage.UsageError as e:
        print(f'tftpd: {e}', file=sys.stderr)
        print(options, file=sys.stderr)
        sys.exit(2)
    globalLogBeginner.beginLoggingTo([twistd_logs()], redirectStandardIO=False)

    try:
        service.privilegedStartService()
    except (WorkingDirectoryError, CannotListenError) as e:
        logger.error('Could not start the TFTP service: %s', e)
        sys.exit(1)
    service.startService()
    reactor.addSystemEventTrigger('before', 'shutdown', service.stopService)
    reactor.run()
