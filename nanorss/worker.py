#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:05:12 krylon>
#
# /data/code/python/nanorss/worker.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.worker

(c) 2026 Benjamin Walkenhorst
"""


import logging
from datetime import timedelta
from threading import Event, Thread
from typing import Callable, Optional, Union

from nanorss import common


class Worker:
    """Worker runs a task periodically in a background thread."""

    __slots__ = [
        "log",
        "task",
        "interval",
        "quit",
        "thread",
    ]

    log: logging.Logger
    task: Callable[[], None]
    interval: timedelta
    quit: Event
    thread: Optional[Thread]

    def __init__(self,
                 task: Callable[[], None],
                 interval: Union[int, float, timedelta]) -> None:
        self.log = common.get_logger("worker")
        self.task = task
        self.quit = Event()
        self.thread = None
        match interval:
            case int(x) | float(x):
                self.interval = timedelta(seconds=x)
            case x if isinstance(x, timedelta):
                self.interval = x
            case _:
                name = interval.__class__.__name__
                msg = f"Interval must be a number (of seconds) or a timedelta, not a {name}"
                raise ValueError(msg)

    @property
    def active(self) -> bool:
        """Return True while the Worker's thread is running."""
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        """Start the background thread. The task runs right away, then once per interval."""
        self.log.debug("Worker is starting, interval is %s", self.interval)
        self.quit.clear()
        self.thread = Thread(name="Worker", target=self._loop, daemon=True)
        self.thread.start()

    def stop(self) -> None:
        """Ask the thread to quit and wait for it."""
        self.quit.set()
        if self.thread is not None:
            self.thread.join()
            self.thread = None
        self.log.debug("Worker has stopped.")

    def _loop(self) -> None:
        while not self.quit.is_set():
            try:
                self.task()
            except Exception as err:  # pylint: disable-msg=W0718
                cname = err.__class__.__name__
                self.log.error("%s in periodic task: %s", cname, err)
            self.quit.wait(self.interval.total_seconds())

# Local Variables: #
# python-indent: 4 #
# End: #
