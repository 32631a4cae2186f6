#!/usr/bin/env python3
# Copyright 2008-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

from setuptools import find_packages, setup

# The twistd plugin in twisted/plugins is picked up from the source tree. It
# is not declared as a package so that the 'twisted' directory never shadows
# the Twisted distribution.
setup(
    name='tftpd',
    version='0.2',
    description='Minimal TFTP server',
    author='Wazo Authors',
    author_email='dev@wazo.community',
    url='http://wazo.community',
    license='GPLv3',
    python_requires='>=3.9',
    packages=find_packages(include=['tftpd', 'tftpd.*'], exclude=['*.tests']),
    install_requires=[
        'twisted',
        'zope.interface',
        'PyYAML',
    ],
    extras_require={
        'test': [
            'pyhamcrest',
            'pytest',
        ],
    },
    entry_points={
        'console_scripts': [
            'tftpd=tftpd.main:main',
        ],
    },
)
