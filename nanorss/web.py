#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 20:31:57 krylon>
#
# /data/code/python/nanorss/web.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.web

(c) 2026 Benjamin Walkenhorst

The web interface: a handful of HTML pages and the JSON API they talk to.
"""


import json
import logging
import os
import pathlib
import re
import socket
from datetime import datetime
from typing import Any, Final, Optional, Union

import bottle
from bottle import request, response
from jinja2 import Environment, FileSystemLoader

from nanorss import common, keys
from nanorss.auth import CookieHandler, CookieName, ExpiredError, AuthError
from nanorss.backup import format_time
from nanorss.common import InvalidError, NanoRSSError
from nanorss.database import Database, DatabaseError
from nanorss.feedlist import get_all_items
from nanorss.fetcher import Fetcher
from nanorss.model import FeeditemKey, User, UserPagemonitor

mime_types: Final[dict[str, str]] = {
    ".css":  "text/css",
    ".map":  "application/json",
    ".js":   "text/javascript",
    ".png":  "image/png",
    ".jpg":  "image/jpeg",
    ".jpeg": "image/jpeg",
    ".svg":  "image/svg+xml",
    ".ico":  "image/vnd.microsoft.icon",
    ".json": "application/json",
    ".html": "text/html",
}

suffix_pat: Final[re.Pattern] = re.compile("([.][^.]+)$")
no_cache: Final[str] = "no-store, max-age=0"


def find_mime_type(path: str) -> str:
    """Attempt to determine the MIME type for a file."""
    m = suffix_pat.search(path)
    if m is None:
        return "application/octet-stream"
    return mime_types.get(m[1], "application/octet-stream")


class WebUI:
    """Present a shiny face to the casual observer."""

    __slots__ = [
        "log",
        "root",
        "tmpl_root",
        "env",
        "host",
        "port",
        "app",
        "db",
        "fetcher",
        "cookies",
    ]

    log: logging.Logger
    root: pathlib.Path
    tmpl_root: pathlib.Path
    env: Environment
    host: str
    port: int
    app: bottle.Bottle
    db: Database
    fetcher: Fetcher
    cookies: CookieHandler

    def __init__(self,
                 db: Database,
                 fetcher: Optional[Fetcher] = None,
                 root: Union[str, pathlib.Path] = "",
                 host: str = "localhost",
                 port: int = common.DefaultPort) -> None:
        self.log = common.get_logger("web")
        self.log.info("Web interface is coming up...")

        self.db = db
        self.fetcher = fetcher if fetcher is not None else Fetcher(db)
        self.cookies = CookieHandler(db)
        self.host = host
        self.port = port

        match root:
            case "":
                self.root = pathlib.Path(__file__).parent.joinpath("webroot")
            case str() as x:
                self.root = pathlib.Path(x)
            case _ if isinstance(root, pathlib.Path):
                self.root = root
            case _:
                raise TypeError("Invalid type for root (must be str or pathlib.Path)")

        self.tmpl_root = self.root.joinpath("templates")
        self.env = Environment(loader=FileSystemLoader(str(self.tmpl_root)), autoescape=True)
        self.env.globals = {
            "dbg": common.Debug,
            "app_string": f"{common.AppName} {common.AppVersion}",
            "hostname": socket.gethostname(),
        }

        bottle.debug(common.Debug)
        self.app = bottle.Bottle()
        route = self.app.route
        route("/", callback=self._handle_root)
        route("/login", callback=self._handle_login_page)
        route("/logout", callback=self._handle_logout)
        route("/feed", callback=self._handle_feed_page)
        route("/settings", callback=self._handle_settings_page)
        route("/status", callback=self._handle_status_page)

        route("/api/login", method="POST", callback=self._handle_login)
        route("/api/configuration",
              method=["GET", "POST"],
              callback=self._handle_configuration)
        route("/api/feed", callback=self._handle_feed)
        route("/api/items/<key>",
              method=["GET", "POST"],
              callback=self._handle_item)
        route("/api/refresh", callback=self._handle_refresh)
        route("/api/status", callback=self._handle_status)

        route("/static/<path:path>", callback=self._handle_static)
        route("/favicon.ico", callback=self._handle_favicon)

        if common.log_requests():
            self.app.add_hook("after_request", self._log_request)

    def run(self) -> None:
        """Run the web server."""
        bottle.run(app=self.app, host=self.host, port=self.port, debug=common.Debug,
                   quiet=not common.Debug)

    def _log_request(self) -> None:
        self.log.info("%s %s %s - %s",
                      request.remote_addr,
                      request.method,
                      request.path,
                      response.status_line)

    def _tmpl_vars(self) -> dict:
        """Return a dict with a few default variables filled in already."""
        return {
            "now": datetime.now().strftime(common.TimeFmt),
            "year": datetime.now().year,
            "time_fmt": common.TimeFmt,
        }

    def _render(self, name: str, title: str, **kwargs) -> str:
        response.set_header("Cache-Control", no_cache)
        tmpl = self.env.get_template(f"{name}.jinja")
        tmpl_vars = self._tmpl_vars()
        tmpl_vars["title"] = f"{common.AppName} {common.AppVersion} - {title}"
        tmpl_vars.update(kwargs)
        return tmpl.render(tmpl_vars)

    def _json(self, data: Any) -> str:
        response.set_header("Content-Type", "application/json")
        response.set_header("Cache-Control", no_cache)
        return json.dumps(data)

    def _fail(self, status: int, msg: str) -> str:
        response.status = status
        response.set_header("Content-Type", "text/plain; charset=utf-8")
        response.set_header("Cache-Control", no_cache)
        return msg

    def _bad_credentials(self, reason: str) -> str:
        self.log.info("Bad credentials: %s", reason)
        return self._fail(401, "Bad credentials")

    def _error(self, err: Exception) -> str:
        cname: Final[str] = err.__class__.__name__
        self.log.error("%s handling %s %s: %s", cname, request.method, request.path, err)
        return self._fail(500, f"{cname}: {err}")

    def _set_cookie(self, username: str, remember: bool) -> None:
        if remember:
            response.set_cookie(CookieName,
                                self.cookies.encode(username),
                                path="/",
                                httponly=True,
                                max_age=self.cookies.max_age)
        else:
            response.set_cookie(CookieName,
                                self.cookies.encode(username),
                                path="/",
                                httponly=True)

    def _clear_cookie(self) -> None:
        response.delete_cookie(CookieName, path="/")

    def _current_user(self) -> User:
        """Resolve the authentication cookie to a User or raise AuthError."""
        try:
            username: Final[str] = self.cookies.username(request.get_cookie(CookieName))
        except ExpiredError:
            self._clear_cookie()
            raise
        user: Final[Optional[User]] = self.db.user_get(username)
        if user is None:
            raise AuthError(f"Unknown username {username}")
        return user

    # Pages

    def _handle_root(self) -> None:
        if request.get_cookie(CookieName):
            bottle.redirect("feed")
        bottle.redirect("login")

    def _handle_login_page(self) -> str:
        return self._render("login", "Login")

    def _handle_logout(self) -> None:
        self._clear_cookie()
        bottle.redirect("login")

    def _page(self, name: str, title: str) -> str:
        try:
            user: Final[User] = self._current_user()
        except AuthError:
            return bottle.redirect("login")
        except DatabaseError as err:
            return self._error(err)
        return self._render(name, title, user=user)

    def _handle_feed_page(self) -> str:
        return self._page("feed", "Feed")

    def _handle_settings_page(self) -> str:
        return self._page("settings", "Settings")

    def _handle_status_page(self) -> str:
        return self._page("status", "Status")

    # API

    def _handle_login(self) -> str:
        username: Final[str] = request.forms.getunicode("username", default="")
        password: Final[str] = request.forms.getunicode("password", default="")
        remember: Final[bool] = common.parse_bool(request.forms.get("rememberMe"), False)

        try:
            user: Final[Optional[User]] = self.db.user_get(username)
        except DatabaseError as err:
            return self._error(err)
        if user is None:
            return self._bad_credentials(f"User {username} does not exist")
        if not user.validate_password(password):
            return self._bad_credentials(f"Invalid password for user {username}")

        self._set_cookie(username, remember)
        response.set_header("Cache-Control", no_cache)
        return "OK"

    def _handle_configuration(self) -> str:
        try:
            user: User = self._current_user()
        except AuthError as err:
            return self._bad_credentials(str(err))

        if request.method == "POST":
            try:
                new_username = request.forms.getunicode("username", default="")
                if new_username != user.username:
                    user.set_username(new_username)
                new_password = request.forms.getunicode("password", default="")
                if new_password != "":
                    user.set_password(new_password)
                user.opml = request.forms.getunicode("opml", default="")
                user.pagemonitor = request.forms.getunicode("pagemonitor", default="")
                renamed: bool = user.new_username != ""
                self.db.user_save(user)
                if renamed:
                    # Force logout
                    self._clear_cookie()
                reloaded = self.db.user_get(user.username)
                assert reloaded is not None
                user = reloaded
            except (DatabaseError, InvalidError) as err:
                return self._error(err)

        return self._json({
            "Username": user.username,
            "Opml": user.opml,
            "Pagemonitor": user.pagemonitor,
        })

    def _handle_feed(self) -> str:
        try:
            user: Final[User] = self._current_user()
        except AuthError as err:
            return self._bad_credentials(str(err))

        try:
            return self._json(get_all_items(self.db, user))
        except NanoRSSError as err:
            return self._error(err)

    def _handle_item(self, key: str) -> str:
        try:
            user: Final[User] = self._current_user()
        except AuthError as err:
            return self._bad_credentials(str(err))

        subject: Final[bytes] = key.encode()
        try:
            if request.method == "POST":
                read = common.parse_bool(request.forms.get("read"), False)
                self.db.readstatus_set(user, subject, read)

            item: Optional[dict[str, Any]] = None
            if subject.startswith(keys.prefix_of(keys.FeeditemKeyPrefix)):
                feeditem = self.db.feeditem_get(FeeditemKey.from_key(subject))
                if feeditem is not None:
                    item = {
                        "URL": feeditem.url,
                        "Contents": feeditem.contents,
                        "Date": format_time(feeditem.date),
                        "Plaintext": False,
                    }
            elif subject.startswith(keys.prefix_of(keys.PagemonitorKeyPrefix)):
                config = UserPagemonitor.from_key(subject)
                page = self.db.page_get(config)
                if page is not None:
                    item = {
                        "URL": config.url,
                        "Contents": page.delta,
                        "Date": format_time(page.updated),
                        "Plaintext": True,
                    }
        except InvalidError as err:
            self.log.info("Invalid item key %s: %s", key, err)
            return self._fail(404, "Not found")
        except DatabaseError as err:
            return self._error(err)

        if item is None:
            return self._fail(404, "Not found")
        item["IsRead"] = self.db.readstatus_get(user, subject)
        return self._json(item)

    def _handle_refresh(self) -> str:
        try:
            self._current_user()
        except AuthError as err:
            return self._bad_credentials(str(err))

        self.fetcher.refresh()
        response.set_header("Cache-Control", no_cache)
        return "OK"

    def _handle_status(self) -> str:
        try:
            user: Final[User] = self._current_user()
        except AuthError as err:
            return self._bad_credentials(str(err))

        def status(title: str, url: str, subject: bytes) -> dict[str, Any]:
            fs = self.db.fetchstatus_get(subject)
            return {
                "Title": title,
                "URL": url,
                "LastSuccess": format_time(fs.last_success if fs else None),
                "LastFailure": format_time(fs.last_failure if fs else None),
            }

        try:
            return self._json({
                "Feeds": [status(f.title, f.url, f.create_key()) for f in user.get_feeds()],
                "Pages": [status(p.title, p.url, p.create_key()) for p in user.get_pages()],
            })
        except NanoRSSError as err:
            return self._error(err)

    # Static files

    def _handle_favicon(self) -> bytes:
        """Handle the request for the favicon."""
        return self._handle_static("favicon.ico")

    def _handle_static(self, path: str) -> bytes:
        """Return one of the static files."""
        base: Final[pathlib.Path] = self.root.joinpath("static").resolve()
        full_path: Final[pathlib.Path] = base.joinpath(path).resolve()
        if base not in full_path.parents or not os.path.isfile(full_path):
            self.log.error("Static file %s was not found", path)
            response.status = 404
            return bytes()

        response.set_header("Content-Type", find_mime_type(path))
        response.set_header("Cache-Control", no_cache if common.Debug else "max-age=7200")
        with open(full_path, "rb") as fh:
            return fh.read()

# Local Variables: #
# python-indent: 4 #
# End: #
