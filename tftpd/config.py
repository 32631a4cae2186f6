# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""TFTP server configuration module.

Read raw parameter values from different sources and return a dictionary
with well-defined values.

The following parameters are defined:
    config_file
    general:
        interface
            The interface to listen on, '' or '*' for all interfaces.
        port
            The well-known port requests are received on.
        data_dir
            The working directory files are read from and written to.
        max_transfers
            The maximum number of concurrent transfers, None for no limit.
        log_transfers
            Log the events of every transfer.
        console
            Stop the server on '--stop' or end of file on standard input.
        verbose

Sources are, by order of priority, the command line, the YAML configuration
file and the default values.

"""
from __future__ import annotations

import logging
from typing import Any, TypedDict, Union, cast

import yaml
from twisted.python import usage


class GeneralConfigDict(TypedDict):
    interface: str
    port: int
    data_dir: str
    max_transfers: Union[int, None]
    log_transfers: bool
    console: bool
    verbose: bool


class TFTPDConfigDict(TypedDict):
    config_file: str
    general: GeneralConfigDict


logger = logging.getLogger(__name__)

_DEFAULT_CONFIG: TFTPDConfigDict = {
    'config_file': '/etc/tftpd/config.yml',
    'general': {
        'interface': '',
        'port': 69,
        'data_dir': 'TFTPFiles',
        'max_transfers': None,
        'log_transfers': True,
        'console': False,
        'verbose': False,
    },
}

_OPTION_TO_PARAM_LIST = [
    # (<option name, (<section, param name>)>)
    ('interface', ('general', 'interface')),
    ('port', ('general', 'port')),
    ('data-dir', ('general', 'data_dir')),
    ('max-transfers', ('general', 'max_transfers')),
]


class ConfigError(Exception):
    """Raise when an error occur while getting configuration."""

    pass


class Options(usage.Options):
    # The 'stderr' and 'log-file' options are about logging, which is set up
    # before the configuration is read. They are not inserted in the config.
    optFlags = [
        ('stderr', 's', 'Log to standard error instead of the log file.'),
        ('verbose', 'v', 'Increase verbosity.'),
        ('no-log', 'l', 'Do not log the events of each transfer.'),
        ('console', 'c', 'Stop the server on "--stop" from standard input.'),
    ]

    optParameters = [
        ('config-file', 'f', None, 'The configuration file'),
        ('log-file', None, None, 'The log file'),
        ('interface', 'i', None, 'The interface to listen on.'),
        ('port', 'p', None, 'The port to listen on.', int),
        ('data-dir', 'd', None, 'The directory files are served from.'),
        (
            'max-transfers',
            None,
            None,
            'The maximum number of concurrent transfers.',
            int,
        ),
    ]


def _convert_cli_to_config(options: Options) -> dict[str, Any]:
    raw_config: dict[str, Any] = {'general': {}}
    if options['config-file'] is not None:
        raw_config['config_file'] = options['config-file']
    for option_name, (section, param_name) in _OPTION_TO_PARAM_LIST:
        if options[option_name] is not None:
            raw_config[section][param_name] = options[option_name]
    if options['verbose']:
        raw_config['general']['verbose'] = True
    if options['no-log']:
        raw_config['general']['log_transfers'] = False
    if options['console']:
        raw_config['general']['console'] = True
    return raw_config


def _read_config_file(filename: str) -> dict[str, Any]:
    try:
        with open(filename) as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug('Configuration file %s not found, skipping', filename)
        return {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f'Could not read configuration file {filename}: {e}')

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f'Configuration file {filename} is not a mapping')
    return _check_sections(filename, content)


def _check_sections(filename: str, content: dict[str, Any]) -> dict[str, Any]:
    # a section with every key commented out is loaded as None
    sections = [
        key for key, value in _DEFAULT_CONFIG.items() if isinstance(value, dict)
    ]
    result = dict(content)
    for section in sections:
        if section not in result:
            continue
        if result[section] is None:
            result[section] = {}
        elif not isinstance(result[section], dict):
            raise ConfigError(
                f'Section "{section}" of configuration file {filename} is not a mapping'
            )
    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    # Later configs take priority. Sections (dictionaries) are merged key by
    # key instead of being replaced. The configs are never modified.
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if isinstance(value, dict):
                base = result.get(key)
                result[key] = _merge_configs(base if isinstance(base, dict) else {}, value)
            else:
                result[key] = value
    return result


def _check_and_convert_parameters(raw_config: dict[str, Any]) -> None:
    general = raw_config['general']

    try:
        general['port'] = int(general['port'])
    except (TypeError, ValueError):
        raise ConfigError(f'Invalid port "{general["port"]}"')
    if not 0 <= general['port'] <= 65535:
        raise ConfigError(f'Port out of range "{general["port"]}"')

    if general['max_transfers'] is not None:
        try:
            general['max_transfers'] = int(general['max_transfers'])
        except (TypeError, ValueError):
            raise ConfigError(f'Invalid max_transfers "{general["max_transfers"]}"')
        if general['max_transfers'] < 1:
            raise ConfigError('Parameter "max_transfers" must be at least 1')

    if not general['data_dir']:
        raise ConfigError('Missing parameter "data_dir"')
    general['data_dir'] = str(general['data_dir'])

    if general['interface'] in (None, '*'):
        general['interface'] = ''


def get_config(argv: Options) -> TFTPDConfigDict:
    """Pull the raw parameters values from the configuration sources and
    return a config dictionary.
    """
    cli_config = _convert_cli_to_config(argv)
    config_file = cli_config.get('config_file', _DEFAULT_CONFIG['config_file'])
    file_config = _read_config_file(config_file)
    raw_config = _merge_configs(
        cast(dict[str, Any], _DEFAULT_CONFIG), file_config, cli_config
    )
    _check_and_convert_parameters(raw_config)
    return cast(TFTPDConfigDict, raw_config)
