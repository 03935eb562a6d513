#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 14:41:05 krylon>
#
# /data/code/python/nanorss/store.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.store

(c) 2026 Benjamin Walkenhorst

Store wraps the LMDB environment we keep all our data in. It is a flat,
byte-keyed store; every method runs in its own LMDB transaction, anything
spanning more than one key has to go through nanorss.tx.
"""


import logging
from pathlib import Path
from typing import Final, Optional, Union

import lmdb

from nanorss import common
from nanorss.common import NanoRSSError


class StoreError(NanoRSSError):
    """StoreError indicates an I/O error in the underlying key-value store.

    A transient error may go away if the operation is repeated, a permanent
    one (e.g. a key LMDB cannot store) will not.
    """

    transient: bool

    def __init__(self, msg: str, transient: bool = True) -> None:
        super().__init__(msg)
        self.transient = transient


permanent_errors: Final[tuple[type[lmdb.Error], ...]] = (
    lmdb.BadValsizeError,
    lmdb.InvalidParameterError,
    lmdb.ReadonlyError,
    lmdb.CorruptedError,
    lmdb.InvalidError,
    lmdb.IncompatibleError,
    lmdb.VersionMismatchError,
)


def wrap(err: lmdb.Error, what: str) -> StoreError:
    """Turn an LMDB error into a StoreError."""
    cname: Final[str] = err.__class__.__name__
    return StoreError(f"{cname} trying to {what}: {err}",
                      not isinstance(err, permanent_errors))


class Store:
    """Store provides get/put/delete and prefix scans over an LMDB environment."""

    __slots__ = [
        "log",
        "env",
        "path",
    ]

    log: logging.Logger
    env: lmdb.Environment
    path: Path

    def __init__(self, root: Union[str, Path] = "", map_size: int = (1 << 36)) -> None:
        self.log = common.get_logger("store")
        match root:
            case "":
                self.path = common.path.db
            case str() as x:
                self.path = Path(x)
            case _ if isinstance(root, Path):
                self.path = root
            case _:
                raise TypeError("Invalid type for root (must be str or pathlib.Path)")

        self.log.debug("Open LMDB environment in %s", self.path)
        try:
            self.env = lmdb.Environment(str(self.path),
                                        subdir=True,
                                        map_size=map_size,
                                        sync=True,
                                        metasync=True,
                                        create=True,
                                        max_dbs=0,
                                        )
        except lmdb.Error as err:
            msg: Final[str] = f"Cannot open store in {self.path}: {err}"
            self.log.error(msg)
            raise StoreError(msg) from err

    def __enter__(self) -> 'Store':
        return self

    def __exit__(self, _ex_type, _ex_val, _trace) -> None:
        self.close()

    def close(self) -> None:
        """Flush and close the environment."""
        self.log.debug("Close LMDB environment in %s", self.path)
        try:
            self.env.sync(True)
            self.env.close()
        except lmdb.Error as err:
            msg: Final[str] = f"Cannot close store in {self.path}: {err}"
            self.log.error(msg)
            raise StoreError(msg) from err

    @property
    def max_key_size(self) -> int:
        """Return the largest key LMDB accepts."""
        return self.env.max_key_size()

    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value stored under <key>, or None."""
        try:
            with self.env.begin() as tx:
                return tx.get(key)
        except lmdb.Error as err:
            raise wrap(err, f"read {key!r}") from err

    def has(self, key: bytes) -> bool:
        """Return True if a value exists for <key>."""
        return self.get(key) is not None

    def put(self, key: bytes, value: bytes) -> None:
        """Store <value> under <key>, replacing any previous value."""
        try:
            with self.env.begin(write=True) as tx:
                tx.put(key, value, overwrite=True)
        except lmdb.Error as err:
            raise wrap(err, f"write {key!r}") from err

    def insert(self, key: bytes, value: bytes) -> bool:
        """Store <value> under <key> unless the key exists. Return True if we wrote it."""
        try:
            with self.env.begin(write=True) as tx:
                return tx.put(key, value, overwrite=False)
        except lmdb.Error as err:
            raise wrap(err, f"insert {key!r}") from err

    def delete(self, key: bytes) -> bool:
        """Delete <key>. Return False if it did not exist."""
        try:
            with self.env.begin(write=True) as tx:
                return tx.delete(key)
        except lmdb.Error as err:
            raise wrap(err, f"delete {key!r}") from err

    def scan(self, prefix: bytes) -> list[tuple[bytes, bytes]]:
        """Return all key/value pairs whose key starts with <prefix>, in key order."""
        pairs: list[tuple[bytes, bytes]] = []
        try:
            with self.env.begin() as tx:
                cur: lmdb.Cursor = tx.cursor()
                if not cur.set_range(prefix):
                    return pairs
                for key, val in cur.iternext(keys=True, values=True):
                    if not key.startswith(prefix):
                        break
                    pairs.append((key, val))
        except lmdb.Error as err:
            raise wrap(err, f"scan {prefix!r}") from err
        return pairs

    def keys(self, prefix: bytes) -> list[bytes]:
        """Return all keys starting with <prefix>, in key order."""
        keys: list[bytes] = []
        try:
            with self.env.begin() as tx:
                cur: lmdb.Cursor = tx.cursor()
                if not cur.set_range(prefix):
                    return keys
                for key in cur.iternext(keys=True, values=False):
                    if not key.startswith(prefix):
                        break
                    keys.append(key)
        except lmdb.Error as err:
            raise wrap(err, f"list keys for {prefix!r}") from err
        return keys

# Local Variables: #
# python-indent: 4 #
# End: #
