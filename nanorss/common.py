#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 14:02:11 krylon>
#
# /data/code/python/nanorss/common.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.common

(c) 2026 Benjamin Walkenhorst

Constants, paths, configuration and logging shared by the whole application.
"""


import logging
import logging.handlers
import os
import tempfile
from datetime import timedelta
from pathlib import Path
from threading import Lock
from typing import Final, Optional, Union

AppName: Final[str] = "nanorss"
AppVersion: Final[str] = "0.1.0"
Debug: bool = os.environ.get("NANORSS_DEBUG", "") not in ("", "0", "false")
TimeFmt: Final[str] = "%Y-%m-%d %H:%M:%S"

DefaultRefreshMinutes: Final[int] = 15
DefaultItemTTL: Final[timedelta] = timedelta(days=14)
DefaultPort: Final[int] = 8080

LogFmt: Final[str] = "%(asctime)s (%(name)-16s / line %(lineno)4d) - %(levelname)-8s %(message)s"


class NanoRSSError(Exception):
    """Base class for application-specific exceptions."""


class InvalidError(NanoRSSError):
    """InvalidError indicates malformed input: a bad key, username or document."""


class AppPath:
    """AppPath holds the paths of the files and directories the application uses."""

    __slots__ = ["__base"]

    __base: Path

    def __init__(self, root: Union[str, Path] = "") -> None:
        if root == "":
            root = os.environ.get("DATABASE_DIR", os.path.join(tempfile.gettempdir(), AppName))
        self.__base = Path(root)

    def base(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Return, and optionally set, the application's base directory."""
        if path is not None:
            self.__base = Path(path)
        return self.__base

    @property
    def db(self) -> Path:
        """Return the directory of the LMDB store (DATABASE_DIR)."""
        return self.__base

    @property
    def log(self) -> Path:
        """Return the path of the log file."""
        return self.__base.joinpath(f"{AppName.lower()}.log")

    @property
    def backup(self) -> Path:
        """Return the default path of the backup file."""
        return Path(f"{AppName.lower()}.json")


path: AppPath = AppPath()

_lock: Final[Lock] = Lock()
_loggers: dict[str, logging.Logger] = {}


def set_basedir(basedir: Union[str, Path]) -> None:
    """Set the application's base directory and create it if it does not exist."""
    with _lock:
        path.base(basedir)
        os.makedirs(path.base(), exist_ok=True)
        _loggers.clear()


def init_app() -> None:
    """Make sure the base directory exists."""
    os.makedirs(path.base(), exist_ok=True)


def get_logger(name: str, terminal: bool = True) -> logging.Logger:
    """Create and return a logger with the given name."""
    with _lock:
        if name in _loggers:
            return _loggers[name]

        os.makedirs(path.base(), exist_ok=True)

        log = logging.getLogger(f"{AppName.lower()}.{name}")
        log.setLevel(logging.DEBUG if Debug else logging.INFO)
        log.propagate = False
        fmt = logging.Formatter(LogFmt)

        for h in list(log.handlers):
            log.removeHandler(h)
            h.close()

        fh = logging.handlers.RotatingFileHandler(str(path.log),
                                                  "a",
                                                  1 << 24,  # 16 MiB
                                                  5)
        fh.setFormatter(fmt)
        log.addHandler(fh)

        if terminal:
            ch = logging.StreamHandler()
            ch.setFormatter(fmt)
            log.addHandler(ch)

        _loggers[name] = log
        return log


def refresh_interval() -> timedelta:
    """Return the worker's refresh interval from REFRESH_INTERVAL_MINUTES."""
    raw: Final[str] = os.environ.get("REFRESH_INTERVAL_MINUTES", str(DefaultRefreshMinutes))
    try:
        minutes = int(raw)
        if minutes <= 0:
            raise ValueError(f"interval must be positive, not {minutes}")
    except ValueError as err:
        get_logger("common").error("Cannot parse refresh interval %r: %s", raw, err)
        minutes = DefaultRefreshMinutes
    return timedelta(minutes=minutes)


def item_ttl() -> timedelta:
    """Return the item TTL, overridable with ITEM_TTL_HOURS."""
    raw: Final[str] = os.environ.get("ITEM_TTL_HOURS", "")
    if raw == "":
        return DefaultItemTTL
    try:
        return timedelta(hours=float(raw))
    except ValueError as err:
        get_logger("common").error("Cannot parse item TTL %r: %s", raw, err)
        return DefaultItemTTL


def parse_bool(raw: Optional[str], default: bool = False) -> bool:
    """Parse a boolean the way HTML forms and environment variables spell them."""
    if raw is None or raw.strip() == "":
        return default
    match raw.strip().lower():
        case "1" | "t" | "true" | "y" | "yes" | "on":
            return True
        case "0" | "f" | "false" | "n" | "no" | "off":
            return False
        case _:
            return default


def log_requests() -> bool:
    """Return True if the web server should log every request (LOG_REQUESTS)."""
    return parse_bool(os.environ.get("LOG_REQUESTS"), True)

# Local Variables: #
# python-indent: 4 #
# End: #
