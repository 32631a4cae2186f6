# Copyright 2011-2026 The Wazo Authors  (see the AUTHORS file)
# SPDX-License-Identifier: GPL-3.0-or-later

"""Synchronization primitives shared by the server and its transfers."""
from __future__ import annotations

import threading


class StopSignal:
    """A cancellation token that can be raised only once.

    The token is created by the owner of the server and handed to the request
    dispatcher and to every transfer when they are created. Holders poll it
    with is_set at well-defined points; raising it never interrupts anything
    by itself.

    The underlying event makes it safe to raise the signal from a thread
    other than the reactor thread, for example from a console reader.

    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    def set(self) -> None:
        with self._lock:
            if self._event.is_set():
                raise ValueError('Stop signal has already been raised')
            self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()
