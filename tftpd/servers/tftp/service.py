# Copyright 2010-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""Working directory access for the TFTP transfers."""
from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


class WorkingDirectoryError(Exception):
    """Raise when the working directory can't be created or used."""


class TFTPDirectoryService:
    """Serve and store files under a path.

    It strips any leading path separator of the requested filename. For
    example, filename '/foo.txt' is the same as 'foo.txt'.

    It also rejects any request that makes reference to the parent directory
    once normalized. For example, a request for filename 'bar/../../foo.txt'
    will be rejected even if 'foo.txt' exist in the parent directory.

    Files are only read and written whole.

    """

    def __init__(self, path: str) -> None:
        self._path = os.path.abspath(path)

    @property
    def path(self) -> str:
        return self._path

    def ensure_directory(self) -> None:
        if os.path.isdir(self._path):
            return
        if os.path.exists(self._path):
            raise WorkingDirectoryError(f'{self._path} is not a directory')
        logger.info('Working directory not found, creating %s', self._path)
        try:
            os.makedirs(self._path)
        except OSError as e:
            raise WorkingDirectoryError(f'could not create {self._path}: {e}')

    def resolve(self, filename: bytes) -> str | None:
        """Return the absolute path of filename, or None if it is outside."""
        rq_orig_path = filename.decode('ascii')
        rq_stripped_path = rq_orig_path.lstrip(os.sep)
        rq_final_path = os.path.normpath(os.path.join(self._path, rq_stripped_path))
        if not rq_final_path.startswith(self._path + os.sep):
            return None
        return rq_final_path

    def is_readable_file(self, path: str) -> bool:
        return os.path.isfile(path)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def read(self, path: str) -> bytes:
        with open(path, 'rb') as f:
            return f.read()

    def create(self, path: str, data: bytes) -> None:
        # 'x' fails if another transfer created the file in the meantime
        with open(path, 'xb') as f:
            f.write(data)
