#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 18:47:30 krylon>
#
# /data/code/python/nanorss/fetcher.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.fetcher

(c) 2026 Benjamin Walkenhorst

Fetcher downloads the feeds and pages our Users are interested in and hands
the results to the Database.
"""


import difflib
import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from threading import BoundedSemaphore, Lock, Thread
from typing import Any, Callable, Final, Iterable, Mapping, Optional, Sequence
from urllib.parse import urljoin

import fastfeedparser as ffp  # type: ignore # pylint: disable-msg=E0401
import requests
from bs4 import BeautifulSoup
from bs4.element import (CData, Comment, Declaration, Doctype,
                         ProcessingInstruction)

from nanorss import common, keys
from nanorss.common import InvalidError, NanoRSSError
from nanorss.database import AggregateError, Database, DatabaseError
from nanorss.model import (FeeditemKey, Feeditem, FetchStatus, PagemonitorPage,
                           User, UserPagemonitor)

timepat: Final[str] = "%Y-%m-%dT%H:%M:%S%z"
fetch_timeout: Final[float] = 30.0
worker_count: int = 8

_skip_strings: Final[tuple[type, ...]] = (Comment, Declaration, Doctype, CData,
                                          ProcessingInstruction)
_skip_tags: Final[frozenset[str]] = frozenset({"script", "style"})
_template_ref: Final[re.Pattern] = re.compile(r"\$(\$|\{(\w+)\}|(\w+))")


class FetchError(NanoRSSError):
    """FetchError indicates that a feed or page could not be downloaded or parsed."""


def convert_html_to_text(html: str) -> str:
    """Extract the text of an HTML document, one trimmed text node per line."""
    soup: Final[BeautifulSoup] = BeautifulSoup(html, "html.parser")
    lines: list[str] = []
    for node in soup.find_all(string=True):
        if isinstance(node, _skip_strings):
            continue
        if node.parent is not None and node.parent.name in _skip_tags:
            continue
        text = node.strip()
        if text != "":
            lines.append(text)
    return "\n".join(lines)


def sanitize_html(base_url: str, html: str) -> str:
    """Remove scripts from item contents and make relative links absolute."""
    if "<" not in html:
        return html
    soup: Final[BeautifulSoup] = BeautifulSoup(html, "html.parser")
    for s in soup.find_all("script"):
        s.decompose()
    for tag, attr in (("a", "href"), ("img", "src")):
        for node in soup.find_all(tag):
            if node.has_attr(attr):
                node[attr] = urljoin(base_url, node[attr])
    return str(soup)


def expand_template(replace: str) -> str:
    """Translate a replacement template using $1 or ${name} references for re.sub."""
    def ref(m: re.Match) -> str:
        if m.group(1) == "$":
            return "$"
        name = m.group(2) or m.group(3)
        return f"\\g<{name}>"

    return _template_ref.sub(ref, replace.replace("\\", "\\\\"))


def filter_text(text: str, match: str, replace: str) -> str:
    """Apply a pagemonitor's match/replace filter to <text>."""
    if match == "":
        return text
    try:
        pat: Final[re.Pattern] = re.compile(match)
        return pat.sub(expand_template(replace), text)
    except (re.error, IndexError) as err:
        raise InvalidError(f"Cannot apply filter {match!r} -> {replace!r}: {err}") from err


def unified_diff(old: str, new: str) -> str:
    """Return a unified diff of two texts with three lines of context."""
    a: Final[list[str]] = [x + "\n" for x in old.splitlines()]
    b: Final[list[str]] = [x + "\n" for x in new.splitlines()]
    return "".join(difflib.unified_diff(a, b, n=3))


def parse_date(raw: Optional[str]) -> Optional[datetime]:
    """Parse the timestamp of a feed entry. Return None if there is none we understand."""
    if raw is None or raw == "":
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.strptime(raw, timepat)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None


class Fetcher:
    """Fetcher refreshes the feeds and pages of all Users."""

    __slots__ = [
        "log",
        "db",
        "session",
        "timeout",
        "workers",
    ]

    log: logging.Logger
    db: Database
    session: requests.Session
    timeout: float
    workers: int

    def __init__(self,
                 db: Database,
                 session: Optional[requests.Session] = None,
                 timeout: float = fetch_timeout,
                 workers: int = worker_count) -> None:
        self.log = common.get_logger("fetcher")
        self.db = db
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = f"{common.AppName}/{common.AppVersion}"
        self.session = session
        self.timeout = timeout
        self.workers = workers

    def refresh(self) -> None:
        """Fetch all pages, then all feeds."""
        try:
            self.fetch_all_pages()
            self.log.info("Pages fetched successfully")
        except NanoRSSError as err:
            self.log.error("Failed to fetch at least one page: %s", err)
        try:
            self.fetch_all_feeds()
            self.log.info("Feeds fetched successfully")
        except NanoRSSError as err:
            self.log.error("Failed to fetch at least one feed: %s", err)

    def _users(self) -> list[User]:
        users: list[User] = []

        def collect(_key: bytes, user: User) -> bool:
            users.append(user)
            return True

        self.db.user_read_all(collect)
        return users

    def _fan_out(self, subjects: Sequence[Any], fn: Callable[[Any], None]) -> list[Exception]:
        """Run <fn> for every subject in its own thread, return the errors."""
        failures: list[Exception] = []
        lock: Final[Lock] = Lock()
        sem: Final[BoundedSemaphore] = BoundedSemaphore(self.workers)

        def run(subject: Any) -> None:
            with sem:
                try:
                    fn(subject)
                except NanoRSSError as err:
                    with lock:
                        failures.append(err)

        threads: Final[list[Thread]] = [Thread(target=run, args=(s, ), daemon=True)
                                        for s in subjects]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return failures

    def fetch_all_pages(self) -> None:
        """Fetch every page of every User. Users are processed one after the other."""
        failures: list[Exception] = []
        for user in self._users():
            try:
                pages = user.get_pages()
            except InvalidError as err:
                self.log.error("Failed to get pages of %s: %s", user.username, err)
                failures.append(err)
                continue
            failures.extend(self._fan_out(pages, self.fetch_page))
        if len(failures) > 0:
            raise AggregateError("Failed to fetch pages", failures)

    def fetch_all_feeds(self) -> None:
        """Fetch every feed of every User. Users are processed one after the other."""
        failures: list[Exception] = []
        for user in self._users():
            try:
                feeds = user.get_feeds()
            except InvalidError as err:
                self.log.error("Failed to get feeds of %s: %s", user.username, err)
                failures.append(err)
                continue
            failures.extend(self._fan_out([f.url for f in feeds], self.fetch_feed))
        if len(failures) > 0:
            raise AggregateError("Failed to fetch feeds", failures)

    def _get(self, url: str) -> requests.Response:
        try:
            res: Final[requests.Response] = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as err:
            cname: Final[str] = err.__class__.__name__
            raise FetchError(f"{cname} trying to GET {url}: {err}") from err
        if res.status_code != 200:
            raise FetchError(f"Cannot GET {url} (status code {res.status_code})")
        return res

    def _record(self, subject: bytes, ok: bool) -> None:
        now: Final[datetime] = self.db.now()
        status: Final[FetchStatus] = \
            FetchStatus(last_success=now) if ok else FetchStatus(last_failure=now)
        try:
            self.db.fetchstatus_set(subject, status)
        except DatabaseError as err:
            self.log.error("Failed to save fetch status for %r: %s", subject, err)

    def fetch_feed(self, url: str) -> None:
        """Download and store a feed, then record the outcome in its FetchStatus."""
        subject: Final[bytes] = keys.create_feed_key(url)
        try:
            res = self._get(url)
            try:
                rss = ffp.parse(res.content)
            except Exception as err:  # pylint: disable-msg=W0718
                cname: Final[str] = err.__class__.__name__
                raise FetchError(f"{cname} trying to parse feed {url}: {err}") from err
            entries = rss.get("entries")
            if entries is None:
                raise FetchError(f"Feed {url} has no items")
            items = self._build_items(url, entries)
            self.log.debug("Got %d items from %s", len(items), url)
            self.db.feeditems_save(*items)
        except NanoRSSError as err:
            self.log.error("Failed to get feed %s: %s", url, err)
            self._record(subject, False)
            raise
        self._record(subject, True)

    def _build_items(self, url: str, entries: Iterable[Mapping[str, Any]]) -> list[Feeditem]:
        """Convert parsed feed entries to Feeditems."""
        items: list[Feeditem] = []
        now: Final[datetime] = self.db.now()
        for art in entries:
            link: str = art.get("link") or ""
            guid: str = art.get("id") or art.get("guid") or link
            date: Optional[datetime] = parse_date(art.get("updated")) or \
                parse_date(art.get("published")) or now
            items.append(Feeditem(
                title=art.get("title") or "",
                url=link,
                date=date,
                contents=sanitize_html(url, self._item_description(art)),
                key=FeeditemKey(feed_url=url, guid=guid),
            ))
        return items

    def _item_description(self, article: Mapping[str, Any]) -> str:
        """Try to get a description/summary from an Atom/RSS item."""
        desc: Optional[str] = article.get("description")
        if desc:
            return desc
        content = article.get("content")
        if content:
            return content[0].get("value", "")
        self.log.debug("Did not find description or content in article \"%s\"",
                       article.get("title"))
        return ""

    def fetch_page(self, config: UserPagemonitor) -> None:
        """Download a page and store it if its filtered text changed."""
        subject: Final[bytes] = config.create_key()
        try:
            page = self.db.page_get(config)
            if page is None:
                page = PagemonitorPage(config=config)
            page.config = config

            res = self._get(config.url)
            text = convert_html_to_text(res.text)
            current = filter_text(text, config.match, config.replace)
            previous = filter_text(page.contents, config.match, config.replace)

            if current != previous:
                page.delta = unified_diff(previous, current)
                page.contents = text
                page.updated = self.db.now()
                self.log.debug("Page %s has changed", config.url)
                self.db.readstatus_set_for_all(subject, False)

            # Unchanged pages are saved too, to update their last-seen time.
            self.db.page_save(page)
        except NanoRSSError as err:
            self.log.error("Failed to get page %s: %s", config.url, err)
            self._record(subject, False)
            raise
        self._record(subject, True)

# Local Variables: #
# python-indent: 4 #
# End: #
