# Copyright 2013-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

# Twisted Application Plugin (tap) file

from tftpd.main import TFTPServiceMaker

service_maker = TFTPServiceMaker()
