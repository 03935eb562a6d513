#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 23:44:19 krylon>
#
# /data/code/python/nanorss/test_worker.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.test_worker

(c) 2026 Benjamin Walkenhorst
"""

import os
import shutil
import unittest
from datetime import datetime, timedelta
from threading import Event
from typing import Final

from nanorss import common
from nanorss.worker import Worker

test_dir: Final[str] = os.path.join(
    "/tmp",
    datetime.now().strftime(f"{common.AppName.lower()}_test_worker_%Y%m%d_%H%M%S"))


class TestWorker(unittest.TestCase):
    """Test the Worker."""

    @classmethod
    def setUpClass(cls) -> None:
        """Prepare the testing environment."""
        common.set_basedir(test_dir)

    @classmethod
    def tearDownClass(cls) -> None:
        """Clean up afterwards."""
        shutil.rmtree(test_dir, ignore_errors=True)

    def test_interval(self) -> None:
        """Test the types accepted as interval."""
        self.assertEqual(Worker(lambda: None, 5).interval, timedelta(seconds=5))
        self.assertEqual(Worker(lambda: None, 0.5).interval, timedelta(milliseconds=500))
        self.assertEqual(Worker(lambda: None, timedelta(minutes=15)).interval,
                         timedelta(minutes=15))
        with self.assertRaises(ValueError):
            Worker(lambda: None, "15m")  # type: ignore

    def test_run(self) -> None:
        """Test that the task runs repeatedly, survives errors, and stops."""
        calls: list[int] = []
        enough: Final[Event] = Event()

        def task() -> None:
            calls.append(1)
            if len(calls) >= 3:
                enough.set()
            if len(calls) == 1:
                raise RuntimeError("first run fails")

        worker: Final[Worker] = Worker(task, 0.01)
        self.assertFalse(worker.active)
        worker.start()
        self.assertTrue(enough.wait(10))
        self.assertTrue(worker.active)
        worker.stop()
        self.assertFalse(worker.active)

        cnt: Final[int] = len(calls)
        enough.clear()
        self.assertFalse(enough.wait(0.1))
        self.assertEqual(len(calls), cnt)

    def test_stop_waits(self) -> None:
        """Test that stop interrupts a long interval."""
        ran: Final[Event] = Event()
        worker: Final[Worker] = Worker(ran.set, timedelta(hours=1))
        worker.start()
        self.assertTrue(ran.wait(10))
        started: Final[datetime] = datetime.now()
        worker.stop()
        self.assertLess(datetime.now() - started, timedelta(seconds=10))

# Local Variables: #
# python-indent: 4 #
# End: #
