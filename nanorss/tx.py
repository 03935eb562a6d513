#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 15:12:48 krylon>
#
# /data/code/python/nanorss/tx.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.tx

(c) 2026 Benjamin Walkenhorst

Multi-key transactions on top of the Store.

A transaction first collects put/delete operations in memory. When the
collecting function is done, the whole batch is written to the transaction
log under tx:<name>; from that moment on the transaction is committed. Then
the operations are applied one by one, and finally the log entry is removed.
If the process dies in between, complete_transactions() replays the batch
when the store is opened again.

Conflicting transactions are serialized by the KeyLocker, which acquires
per-key locks in sorted order.
"""


import hashlib
import logging
import pickle
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Callable, Final, Optional

from nanorss import common, keys
from nanorss.common import InvalidError
from nanorss.store import Store, StoreError

retry_interval: Final[float] = 10.0


class TxError(StoreError):
    """TxError indicates a problem with the transaction log."""


class TxOp(Enum):
    """TxOp is the kind of operation in a transaction."""

    Put = "put"
    Delete = "del"


@dataclass(slots=True)
class TxEntry:
    """TxEntry is a single staged operation."""

    op: TxOp
    key: bytes
    value: Optional[bytes] = None


@dataclass(kw_only=True, slots=True)
class Tx:
    """Tx is a batch of operations waiting to be committed.

    Reads through a Tx see the operations staged so far, so a function can
    update the same key (e.g. a reference list) more than once.
    """

    store: Store
    items: list[TxEntry] = field(default_factory=list)
    latest: dict[bytes, Optional[bytes]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for item in self.items:
            self.latest[item.key] = item.value

    def __len__(self) -> int:
        return len(self.items)

    def check_key(self, key: bytes) -> None:
        """Raise InvalidError if <key> cannot be stored."""
        if len(key) == 0 or len(key) > self.store.max_key_size:
            raise InvalidError(f"Key of {len(key)} bytes cannot be stored "
                               f"(max. {self.store.max_key_size}): {key[:64]!r}...")

    def put(self, key: bytes, value: bytes) -> None:
        """Stage a put operation."""
        self.check_key(key)
        self.items.append(TxEntry(TxOp.Put, key, value))
        self.latest[key] = value

    def delete(self, key: bytes) -> None:
        """Stage a delete operation."""
        self.check_key(key)
        self.items.append(TxEntry(TxOp.Delete, key))
        self.latest[key] = None

    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value of <key> as it will be after this Tx is applied."""
        self.check_key(key)
        if key in self.latest:
            return self.latest[key]
        return self.store.get(key)

    def has(self, key: bytes) -> bool:
        """Return True if <key> will exist after this Tx is applied."""
        return self.get(key) is not None

    def apply(self, store: Store) -> None:
        """Apply all operations in order. Both kinds are idempotent."""
        for item in self.items:
            match item.op:
                case TxOp.Put:
                    assert item.value is not None
                    store.put(item.key, item.value)
                case TxOp.Delete:
                    store.delete(item.key)

    def encode(self, name: bytes) -> bytes:
        """Serialize the Tx for the transaction log."""
        record = {
            "name": name,
            "items": [(x.op.value, x.key, x.value) for x in self.items],
        }
        return pickle.dumps(record)

    @classmethod
    def decode(cls, store: Store, raw: bytes) -> tuple[bytes, 'Tx']:
        """Deserialize a transaction log record. Return the name and the Tx."""
        try:
            record = pickle.loads(raw)
            tx = cls(store=store,
                     items=[TxEntry(TxOp(op), key, val) for op, key, val in record["items"]])
            return record["name"], tx
        except (pickle.PickleError, EOFError, KeyError, TypeError, ValueError) as err:
            cname: Final[str] = err.__class__.__name__
            raise TxError(f"{cname} trying to decode transaction log record: {err}") from err


@dataclass(slots=True)
class _KeyLock:
    lock: Lock = field(default_factory=Lock)
    refs: int = 0


class KeyLocker:
    """KeyLocker hands out one mutex per key.

    Keys are always locked in sorted order, so two transactions can never wait
    for each other in a cycle. Locks are not re-entrant.
    """

    __slots__ = [
        "lock",
        "locks",
    ]

    lock: Lock
    locks: dict[bytes, _KeyLock]

    def __init__(self) -> None:
        self.lock = Lock()
        self.locks = {}

    def lock_keys(self, *lock_keys: bytes) -> None:
        """Acquire the locks for all <lock_keys>."""
        ordered: Final[list[bytes]] = sorted(set(lock_keys))
        for key in ordered:
            with self.lock:
                kl = self.locks.get(key)
                if kl is None:
                    kl = _KeyLock()
                    self.locks[key] = kl
                kl.refs += 1
            kl.lock.acquire()

    def unlock_keys(self, *lock_keys: bytes) -> None:
        """Release the locks for all <lock_keys>, in reverse order."""
        ordered: Final[list[bytes]] = sorted(set(lock_keys), reverse=True)
        for key in ordered:
            with self.lock:
                kl = self.locks[key]
                kl.lock.release()
                kl.refs -= 1
                if kl.refs == 0:
                    del self.locks[key]

    @contextmanager
    def locked(self, *lock_keys: bytes):
        """Hold the locks for <lock_keys> for the duration of a with block."""
        self.lock_keys(*lock_keys)
        try:
            yield
        finally:
            self.unlock_keys(*lock_keys)


def tx_name(lock_keys: tuple[bytes, ...]) -> bytes:
    """Derive the name of a transaction from the keys it locks."""
    return b"\x00".join(lock_keys)


class Transactor:
    """Transactor runs functions as crash-safe multi-key transactions."""

    __slots__ = [
        "log",
        "store",
        "locker",
        "retry_interval",
    ]

    log: logging.Logger
    store: Store
    locker: KeyLocker
    retry_interval: float

    def __init__(self, store: Store, interval: float = retry_interval) -> None:
        self.log = common.get_logger("tx")
        self.store = store
        self.locker = KeyLocker()
        self.retry_interval = interval

    def log_key(self, name: bytes) -> bytes:
        """Return the key the transaction <name> is logged under."""
        key: bytes = keys.create_tx_key(name)
        if len(key) > self.store.max_key_size:
            digest: Final[str] = hashlib.sha256(name).hexdigest()
            key = keys.create_tx_key(f"sha256-{digest}".encode())
        return key

    def in_transaction(self, fn: Callable[[Tx], None], *lock_keys: bytes) -> None:
        """Lock <lock_keys>, let <fn> stage operations, then commit them.

        If <fn> raises, nothing is written and the exception propagates.
        Keys that cannot be stored are rejected while staging. Transient store
        errors after the transaction log entry has been written are retried
        until they succeed, permanent ones propagate.
        """
        self.locker.lock_keys(*lock_keys)
        try:
            tx: Final[Tx] = Tx(store=self.store)
            fn(tx)
            if len(tx) == 0:
                return
            self._commit(tx, tx_name(lock_keys))
        finally:
            self.locker.unlock_keys(*lock_keys)

    def _commit(self, tx: Tx, name: bytes) -> None:
        key: Final[bytes] = self.log_key(name)
        if self.store.has(key):
            raise TxError(f"Transaction {name!r} already exists")

        record: Final[bytes] = tx.encode(name)
        self._retry("write transaction log", lambda: self.store.put(key, record))
        self._retry("apply transaction", lambda: tx.apply(self.store))
        self._retry("delete transaction log", lambda: self.store.delete(key))

    def _retry(self, what: str, fn: Callable[[], object]) -> None:
        while True:
            try:
                fn()
                return
            except StoreError as err:
                if not err.transient:
                    self.log.error("Failed to %s: %s", what, err)
                    raise
                self.log.error("Failed to %s, retrying in %.1f seconds: %s",
                               what,
                               self.retry_interval,
                               err)
                time.sleep(self.retry_interval)

    def complete_transactions(self) -> int:
        """Replay every transaction left in the log. Return how many there were."""
        cnt: int = 0
        for key, raw in self.store.scan(keys.prefix_of(keys.TxKeyPrefix)):
            name, tx = Tx.decode(self.store, raw)
            self.log.info("Replay unfinished transaction %r (%d operations)",
                          name,
                          len(tx))
            tx.apply(self.store)
            self.store.delete(key)
            cnt += 1
        return cnt

# Local Variables: #
# python-indent: 4 #
# End: #
