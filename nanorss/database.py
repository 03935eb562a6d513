#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 17:21:40 krylon>
#
# /data/code/python/nanorss/database.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.database

(c) 2026 Benjamin Walkenhorst

Database is the typed layer over the Store. It knows what our entities look
like, which reference lists have to be kept in sync with them, and when to
touch an entity's last-seen time. Everything that writes more than one key
goes through the Transactor.
"""


import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Final, Optional, TypeVar, Union

from nanorss import common, index, keys
from nanorss.common import InvalidError, NanoRSSError
from nanorss.model import (FeeditemKey, Feeditem, FetchStatus, PagemonitorPage,
                           User, UserPagemonitor, decode_time, encode_time)
from nanorss.store import Store, StoreError
from nanorss.tx import Transactor, Tx, retry_interval

T = TypeVar("T")
Visitor = Callable[[bytes, T], bool]

SchemaVersion: Final[int] = 1


class DatabaseError(NanoRSSError):
    """Exception class for database-specific errors."""


class ConflictError(DatabaseError):
    """ConflictError indicates that a username is taken already."""


class AggregateError(DatabaseError):
    """AggregateError is raised by operations on many records when at least one of them failed.

    The operation carries on past individual failures, so everything that
    did not fail has been processed.
    """

    failures: list[Exception]

    def __init__(self, msg: str, failures: list[Exception]) -> None:
        super().__init__(f"{msg} ({len(failures)} failed)")
        self.failures = failures


def utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


class Database:
    """Database provides access to users, feed items, pages and their metadata."""

    __slots__ = [
        "log",
        "path",
        "store",
        "tx",
        "item_ttl",
        "clock",
    ]

    log: logging.Logger
    path: Path
    store: Store
    tx: Transactor
    item_ttl: timedelta
    clock: Callable[[], datetime]

    def __init__(self,
                 path: Optional[Union[Path, str]] = None,
                 item_ttl: Optional[timedelta] = None,
                 interval: float = retry_interval,
                 clock: Callable[[], datetime] = utcnow) -> None:
        if path is None:
            self.path = common.path.db
        else:
            match path:
                case x if isinstance(x, Path):
                    self.path = x
                case x if isinstance(x, str):
                    self.path = Path(x)

        self.log = common.get_logger("database")
        self.item_ttl = item_ttl if item_ttl is not None else common.item_ttl()
        self.clock = clock
        self.log.debug("Open database at %s", self.path)

        self.store = Store(self.path)
        self.tx = Transactor(self.store, interval)

        # Both steps are fatal if they fail, the database is not usable
        # without them.
        cnt: Final[int] = self.tx.complete_transactions()
        if cnt > 0:
            self.log.info("Completed %d unfinished transactions", cnt)
        self.__migrate()

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, _ex_type, _ex_val, _tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying Store."""
        self.store.close()

    @property
    def skip_ttl(self) -> timedelta:
        """Return the minimum age of a last-seen time before it is updated."""
        return self.item_ttl / 2

    def now(self) -> datetime:
        """Return the current time according to the Database's clock."""
        return self.clock()

    # Schema

    def schema_version(self) -> int:
        """Return the schema version of the store. A store without one is version 0."""
        raw: Final[Optional[bytes]] = self.store.get(keys.SchemaVersionKey)
        if raw is None:
            return 0
        return int(raw.decode())

    def __migrate(self) -> None:
        version: Final[int] = self.schema_version()
        match version:
            case 0:
                self.log.info("Migrate store in %s from version 0 to %d",
                              self.path,
                              SchemaVersion)
                self.tx.in_transaction(self.__rebuild_indexes, keys.SchemaVersionKey)
            case x if x == SchemaVersion:
                pass
            case _:
                raise DatabaseError(f"Unsupported schema version {version} in {self.path}")

    def __rebuild_indexes(self, tx: Tx) -> None:
        users: Final[list[bytes]] = self.store.keys(keys.prefix_of(keys.UserKeyPrefix))
        if len(users) > 0:
            tx.put(keys.UsersIndexKey, index.encode(users))

        feeds: dict[bytes, list[bytes]] = defaultdict(list)
        for key in self.store.keys(keys.prefix_of(keys.FeeditemKeyPrefix)):
            feeds[FeeditemKey.from_key(key).feed_key()].append(key)
        for feed_key, items in feeds.items():
            tx.put(feed_key, index.encode(items))

        read: dict[str, list[bytes]] = defaultdict(list)
        for key in self.store.keys(keys.prefix_of(keys.ReadStatusKeyPrefix)):
            if key.count(keys.separator) < 2:
                # A reference list, not a marker.
                continue
            username, item_key = keys.decode_readstatus_key(key)
            read[username].append(item_key)
        for username, items in read.items():
            tx.put(keys.create_readstatus_index_key(username), index.encode(items))

        tx.put(keys.SchemaVersionKey, str(SchemaVersion).encode())

    # Users

    def user_get(self, username: str) -> Optional[User]:
        """Load a User by name. Return None if there is no such User."""
        try:
            raw: Final[Optional[bytes]] = self.store.get(keys.create_user_key(username))
            if raw is None:
                return None
            return User.decode(raw, username)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load User {username}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def user_get_all(self) -> list[str]:
        """Return the names of all Users."""
        try:
            return [keys.decode_user_key(k)
                    for k in index.members(self.store, keys.UsersIndexKey)]
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load list of Users: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def user_save(self, user: User) -> None:
        """Save a User.

        If the User has a new username staged, the User and its read
        statuses are moved to the new name in a single transaction, and
        ConflictError is raised if that name is taken.
        """
        if user.username.strip() == "" and user.new_username == "":
            raise InvalidError("Cannot save a User without a username")

        if user.new_username == "" or user.new_username == user.username:
            user.new_username = ""
            self.__user_put(user)
        elif user.username == "":
            user.username, user.new_username = user.new_username, ""
            self.__user_put(user)
        else:
            self.__user_rename(user)

    def __user_put(self, user: User) -> None:
        key: Final[bytes] = user.create_key()

        def save(tx: Tx) -> None:
            tx.put(key, user.encode())
            index.add(tx, keys.UsersIndexKey, key)

        try:
            self.tx.in_transaction(save, key, keys.UsersIndexKey)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to save User {user.username}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def __user_rename(self, user: User) -> None:
        old_name: Final[str] = user.username
        new_name: Final[str] = user.new_username
        old_key: Final[bytes] = keys.create_user_key(old_name)
        new_key: Final[bytes] = keys.create_user_key(new_name)
        old_idx: Final[bytes] = keys.create_readstatus_index_key(old_name)
        new_idx: Final[bytes] = keys.create_readstatus_index_key(new_name)

        def rename(tx: Tx) -> None:
            if tx.has(new_key):
                raise ConflictError(f"Username {new_name} is already in use")

            moved: Final[list[bytes]] = index.members(tx, old_idx)
            for item_key in moved:
                tx.delete(keys.create_readstatus_key(old_name, item_key))
                tx.put(keys.create_readstatus_key(new_name, item_key), b"")
            index.add_all(tx, new_idx, moved)
            tx.delete(old_idx)

            tx.put(new_key, user.encode())
            tx.delete(old_key)
            index.remove(tx, keys.UsersIndexKey, old_key)
            index.add(tx, keys.UsersIndexKey, new_key)

        self.log.debug("Rename User %s to %s", old_name, new_name)
        try:
            self.tx.in_transaction(rename,
                                   old_key,
                                   new_key,
                                   old_idx,
                                   new_idx,
                                   keys.UsersIndexKey)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to rename User {old_name} to {new_name}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

        user.username = new_name
        user.new_username = ""

    def user_read_all(self, visitor: Visitor[User]) -> None:
        """Call <visitor> for every User until it returns False."""
        def decode(key: bytes, raw: bytes) -> User:
            return User.decode(raw, keys.decode_user_key(key))

        self.__read_all(keys.UserKeyPrefix, decode, visitor)

    def __read_all(self,
                   ns: str,
                   decode: Callable[[bytes, bytes], T],
                   visitor: Visitor[T]) -> None:
        failures: list[Exception] = []
        try:
            pairs: Final[list[tuple[bytes, bytes]]] = self.store.scan(keys.prefix_of(ns))
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to read all records in {ns}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

        for key, raw in pairs:
            try:
                rec = decode(key, raw)
            except InvalidError as err:
                self.log.error("Failed to decode %s: %s", key, err)
                failures.append(err)
                continue
            if not visitor(key, rec):
                break

        if len(failures) > 0:
            raise AggregateError(f"Failed to read some records in {ns}", failures)

    # Feed items

    def feeditem_get(self, key: FeeditemKey) -> Optional[Feeditem]:
        """Load a Feeditem. Return None if it does not exist."""
        try:
            raw: Final[Optional[bytes]] = self.store.get(key.create_key())
            if raw is None:
                return None
            return Feeditem.decode(raw, key)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load Feeditem {key}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def feeditems_save(self, *items: Feeditem) -> None:
        """Save feed items in one transaction.

        Each item's last-seen time is touched, and an item that did not
        change is not written again. All items need a key.
        """
        if len(items) == 0:
            return

        lock_keys: list[bytes] = []
        for item in items:
            if item.key is None:
                raise InvalidError(f"Feeditem {item.title} has no key")
            subject = item.key.create_key()
            lock_keys.extend((subject,
                              keys.create_lastseen_key(subject),
                              item.key.feed_key()))

        now: Final[datetime] = self.now()

        def save(tx: Tx) -> None:
            added: dict[bytes, list[bytes]] = defaultdict(list)
            for item in items:
                assert item.key is not None
                subject = item.key.create_key()
                prev_raw = tx.get(subject)
                if prev_raw is not None:
                    prev = Feeditem.decode(prev_raw)
                    if prev.date is not None and item.date is not None:
                        item.date = item.date.astimezone(prev.date.tzinfo)
                    if prev.same_content(item):
                        item.updated = prev.updated
                if item.updated is None:
                    item.updated = now

                self.__touch(tx, subject, now)

                value = item.encode()
                if value != prev_raw:
                    tx.put(subject, value)
                added[item.key.feed_key()].append(subject)

            for feed_key, subjects in added.items():
                index.add_all(tx, feed_key, subjects)

        try:
            self.tx.in_transaction(save, *lock_keys)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to save {len(items)} Feeditems: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def feeditem_get_for_user(self, user: User) -> list[Feeditem]:
        """Load the items of all feeds the User is subscribed to."""
        items: list[Feeditem] = []
        try:
            for feed in user.get_feeds():
                for subject in index.members(self.store, feed.create_key()):
                    raw = self.store.get(subject)
                    if raw is None:
                        continue
                    items.append(Feeditem.decode(raw, FeeditemKey.from_key(subject)))
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load Feeditems for {user.username}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err
        return items

    def feeditem_read_all(self, visitor: Visitor[Feeditem]) -> None:
        """Call <visitor> for every Feeditem until it returns False."""
        def decode(key: bytes, raw: bytes) -> Feeditem:
            return Feeditem.decode(raw, FeeditemKey.from_key(key))

        self.__read_all(keys.FeeditemKeyPrefix, decode, visitor)

    # Pages

    def page_get(self, config: UserPagemonitor) -> Optional[PagemonitorPage]:
        """Load the stored state of a monitored page. Return None if there is none."""
        try:
            raw: Final[Optional[bytes]] = self.store.get(config.create_key())
            if raw is None:
                return None
            return PagemonitorPage.decode(raw, config)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load page {config.url}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def page_save(self, page: PagemonitorPage) -> None:
        """Save a page, touching its last-seen time. An unchanged page is not written."""
        if page.config is None:
            raise InvalidError("PagemonitorPage has no configuration")
        subject: Final[bytes] = page.config.create_key()
        now: Final[datetime] = self.now()
        if page.updated is None:
            page.updated = now

        def save(tx: Tx) -> None:
            self.__touch(tx, subject, now)
            prev_raw = tx.get(subject)
            if prev_raw is not None and PagemonitorPage.decode(prev_raw) == page:
                return
            tx.put(subject, page.encode())

        try:
            self.tx.in_transaction(save, subject, keys.create_lastseen_key(subject))
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to save page {page.config.url}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def page_get_for_user(self, user: User) -> list[PagemonitorPage]:
        """Load the stored state of all pages the User monitors."""
        pages: list[PagemonitorPage] = []
        for config in user.get_pages():
            page = self.page_get(config)
            if page is not None:
                pages.append(page)
        return pages

    def page_read_all(self, visitor: Visitor[PagemonitorPage]) -> None:
        """Call <visitor> for every stored page until it returns False."""
        def decode(key: bytes, raw: bytes) -> PagemonitorPage:
            return PagemonitorPage.decode(raw, UserPagemonitor.from_key(key))

        self.__read_all(keys.PagemonitorKeyPrefix, decode, visitor)

    # Fetch status

    def fetchstatus_get(self, subject: bytes) -> Optional[FetchStatus]:
        """Load the FetchStatus of a feed or page."""
        try:
            raw: Final[Optional[bytes]] = self.store.get(keys.create_fetchstatus_key(subject))
            if raw is None:
                return None
            return FetchStatus.decode(raw)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load FetchStatus of {subject!r}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def fetchstatus_set(self, subject: bytes, status: FetchStatus) -> None:
        """Merge the timestamps set in <status> into the stored FetchStatus."""
        key: Final[bytes] = keys.create_fetchstatus_key(subject)

        def merge(tx: Tx) -> None:
            raw = tx.get(key)
            prev = FetchStatus.decode(raw) if raw is not None else FetchStatus()
            tx.put(key, prev.merge(status).encode())

        try:
            self.tx.in_transaction(merge, key)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to save FetchStatus of {subject!r}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    # Last seen

    def lastseen_get(self, subject: bytes) -> Optional[datetime]:
        """Return when <subject> was last seen at its source."""
        raw: Final[Optional[bytes]] = self.store.get(keys.create_lastseen_key(subject))
        if raw is None:
            return None
        return decode_time(raw.decode())

    def lastseen_set(self, subject: bytes) -> None:
        """Record that <subject> has been seen just now."""
        now: Final[datetime] = self.now()
        self.tx.in_transaction(lambda tx: self.__touch(tx, subject, now),
                               keys.create_lastseen_key(subject))

    def __touch(self, tx: Tx, subject: bytes, now: datetime) -> None:
        key: Final[bytes] = keys.create_lastseen_key(subject)
        raw: Final[Optional[bytes]] = tx.get(key)
        if raw is not None:
            prev = decode_time(raw.decode())
            if prev is not None and now < prev + self.skip_ttl:
                return
        tx.put(key, encode_time(now).encode())  # type: ignore

    # Server configuration

    def config_get(self, name: str) -> Optional[str]:
        """Return the value of a server configuration variable."""
        raw: Final[Optional[bytes]] = self.store.get(keys.create_config_key(name))
        return raw.decode() if raw is not None else None

    def config_get_or_create(self, name: str, generator: Callable[[], str]) -> str:
        """Return the value of a server configuration variable.

        If it does not exist yet, <generator> is called to create it. When
        several callers race to create the same variable, all of them get
        the value of the one that won.
        """
        key: Final[bytes] = keys.create_config_key(name)
        try:
            value: Optional[str] = self.config_get(name)
            if value is not None:
                return value

            with self.tx.locker.locked(key):
                value = self.config_get(name)
                if value is not None:
                    return value
                value = generator()
                if value == "":
                    return value
                if self.store.insert(key, value.encode()):
                    self.log.debug("Created server configuration variable %s", name)
                    return value
                winner: Final[Optional[str]] = self.config_get(name)
                assert winner is not None
                return winner
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to create config variable {name}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def config_set(self, name: str, value: str) -> None:
        """Set a server configuration variable."""
        key: Final[bytes] = keys.create_config_key(name)
        try:
            with self.tx.locker.locked(key):
                self.store.put(key, value.encode())
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to set config variable {name}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def config_get_all(self) -> dict[str, str]:
        """Return all server configuration variables."""
        try:
            return {keys.decode_config_key(k): v.decode()
                    for k, v in self.store.scan(keys.prefix_of(keys.ServerConfigKeyPrefix))}
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to load config variables: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    # Read status

    def readstatus_get(self, user: User, subject: bytes) -> bool:
        """Return True if the User has read the item or page <subject>."""
        return self.store.has(keys.create_readstatus_key(user.username, subject))

    def readstatus_get_all(self, user: User) -> list[bytes]:
        """Return the keys of all items and pages the User has read."""
        return index.members(self.store,
                             keys.create_readstatus_index_key(user.username))

    def readstatus_set(self, user: User, subject: bytes, read: bool) -> None:
        """Mark the item or page <subject> as read or unread for the User."""
        marker: Final[bytes] = keys.create_readstatus_key(user.username, subject)
        idx: Final[bytes] = keys.create_readstatus_index_key(user.username)

        def update(tx: Tx) -> None:
            if read:
                index.add(tx, idx, subject)
                tx.put(marker, b"")
            else:
                if tx.has(marker):
                    tx.delete(marker)
                index.remove(tx, idx, subject)

        try:
            self.tx.in_transaction(update, user.create_key(), idx)
        except StoreError as err:
            cname: Final[str] = err.__class__.__name__
            msg: Final[str] = f"{cname} trying to set read status of {subject!r} " + \
                f"for {user.username}: {err}"
            self.log.error(msg)
            raise DatabaseError(msg) from err

    def readstatus_set_for_all(self, subject: bytes, read: bool) -> None:
        """Mark <subject> as read or unread for every User."""
        failures: list[Exception] = []
        for username in self.user_get_all():
            try:
                self.readstatus_set(User(username=username), subject, read)
            except (DatabaseError, InvalidError) as err:
                failures.append(err)
        if len(failures) > 0:
            raise AggregateError(f"Failed to set read status of {subject!r}", failures)

    # Garbage collection

    def delete_expired_items(self) -> None:
        """Delete feed items and pages that have not been seen within the item TTL."""
        cutoff: Final[datetime] = self.now() - self.item_ttl
        failures: list[Exception] = []
        for ns in (keys.FeeditemKeyPrefix, keys.PagemonitorKeyPrefix):
            for subject in self.store.keys(keys.prefix_of(ns)):
                try:
                    self.__expire(subject, ns, cutoff)
                except (DatabaseError, InvalidError, StoreError) as err:
                    self.log.error("Failed to expire %s: %s", subject, err)
                    failures.append(err)

        # Last-seen times left behind by entities that are gone.
        for key in self.store.keys(keys.prefix_of(keys.LastSeenKeyPrefix)):
            try:
                subject = keys.decode_lastseen_key(key)
                if self.store.has(subject):
                    continue
                self.tx.in_transaction(
                    lambda tx, k=key, s=subject: self.__expire_orphan(tx, k, s, cutoff),
                    subject,
                    key)
            except (InvalidError, StoreError) as err:
                self.log.error("Failed to expire last-seen time %s: %s", key, err)
                failures.append(err)

        if len(failures) > 0:
            raise AggregateError("Failed to delete some expired items", failures)

    def __expire_orphan(self, tx: Tx, key: bytes, subject: bytes, cutoff: datetime) -> None:
        if tx.has(subject):
            return
        raw: Final[Optional[bytes]] = tx.get(key)
        if raw is None:
            return
        stamp: Final[Optional[datetime]] = decode_time(raw.decode())
        if stamp is None or stamp <= cutoff:
            self.log.debug("Delete orphaned last-seen time %s", key)
            tx.delete(key)

    def __expire(self, subject: bytes, ns: str, cutoff: datetime) -> None:
        ls_key: Final[bytes] = keys.create_lastseen_key(subject)
        lock_keys: list[bytes] = [subject, ls_key]
        feed_key: Optional[bytes] = None
        if ns == keys.FeeditemKeyPrefix:
            feed_key = FeeditemKey.from_key(subject).feed_key()
            lock_keys.append(feed_key)

        def expire(tx: Tx) -> None:
            raw = tx.get(ls_key)
            if raw is not None:
                stamp = decode_time(raw.decode())
                if stamp is not None and stamp > cutoff:
                    return
            self.log.debug("Delete expired %s", subject)
            tx.delete(subject)
            tx.delete(ls_key)
            if feed_key is not None:
                index.remove(tx, feed_key, subject)

        self.tx.in_transaction(expire, *lock_keys)

    def delete_stale_fetch_statuses(self) -> None:
        """Delete fetch statuses that have seen no activity within the item TTL."""
        cutoff: Final[datetime] = self.now() - self.item_ttl
        failures: list[Exception] = []
        for key, raw in self.store.scan(keys.prefix_of(keys.FetchStatusKeyPrefix)):
            try:
                if self.__is_stale(raw, cutoff):
                    self.tx.in_transaction(lambda tx, k=key: self.__expire_status(tx, k, cutoff),
                                           key)
            except (InvalidError, StoreError) as err:
                self.log.error("Failed to expire fetch status %s: %s", key, err)
                failures.append(err)

        if len(failures) > 0:
            raise AggregateError("Failed to delete some stale fetch statuses", failures)

    @staticmethod
    def __is_stale(raw: Optional[bytes], cutoff: datetime) -> bool:
        if raw is None:
            return False
        stamp: Final[Optional[datetime]] = FetchStatus.decode(raw).last_activity
        return stamp is None or stamp < cutoff

    def __expire_status(self, tx: Tx, key: bytes, cutoff: datetime) -> None:
        # The record may have been updated since the scan.
        if self.__is_stale(tx.get(key), cutoff):
            self.log.debug("Delete stale fetch status %s", key)
            tx.delete(key)

    def delete_stale_read_statuses(self) -> None:
        """Remove read statuses that refer to items or pages that no longer exist."""
        failures: list[Exception] = []
        for username in self.user_get_all():
            user = User(username=username)
            for subject in self.readstatus_get_all(user):
                if self.store.has(subject):
                    continue
                try:
                    self.readstatus_set(user, subject, False)
                except DatabaseError as err:
                    failures.append(err)

        if len(failures) > 0:
            raise AggregateError("Failed to delete some stale read statuses", failures)

    def gc(self) -> None:
        """Run all cleanup tasks. Raise AggregateError if any of them failed."""
        failures: list[Exception] = []
        for task in (self.delete_expired_items,
                     self.delete_stale_fetch_statuses,
                     self.delete_stale_read_statuses):
            try:
                task()
            except (DatabaseError, InvalidError, StoreError) as err:
                self.log.error("Cleanup task %s failed: %s", task.__name__, err)
                failures.append(err)

        if len(failures) > 0:
            raise AggregateError("Failed to clean up database", failures)

# Local Variables: #
# python-indent: 4 #
# End: #
