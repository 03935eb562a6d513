#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 19:26:44 krylon>
#
# /data/code/python/nanorss/auth.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.auth

(c) 2026 Benjamin Walkenhorst

Authentication cookies. The cookie holds a JWT carrying the username, signed
with a key that is created on first use and kept in the server
configuration.
"""


import base64
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Final, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from nanorss import common
from nanorss.common import NanoRSSError
from nanorss.database import Database

CookieName: Final[str] = "nanorss"
SignKeyName: Final[str] = "cookie-sign-key"
SignKeyLength: Final[int] = 128
UsernameClaim: Final[str] = "username"
Algorithm: Final[str] = "HS256"
cookie_expires: Final[timedelta] = timedelta(days=14)


class AuthError(NanoRSSError):
    """AuthError indicates that a cookie could not be authenticated."""


class ExpiredError(AuthError):
    """ExpiredError indicates that a cookie was valid once, but has expired."""


def generate_key() -> str:
    """Return a new random signing key, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(SignKeyLength)).decode("ascii")


class CookieHandler:
    """CookieHandler creates and validates authentication tokens."""

    __slots__ = [
        "log",
        "key",
        "expires",
    ]

    log: logging.Logger
    key: bytes
    expires: timedelta

    def __init__(self, db: Database, expires: timedelta = cookie_expires) -> None:
        self.log = common.get_logger("auth")
        self.key = base64.b64decode(db.config_get_or_create(SignKeyName, generate_key))
        self.expires = expires

    @property
    def max_age(self) -> int:
        """Return the lifetime of a cookie in seconds."""
        return int(self.expires.total_seconds())

    def encode(self, username: str) -> str:
        """Return a signed token for <username>."""
        claims: Final[dict[str, Any]] = {
            UsernameClaim: username,
            "exp": datetime.now(timezone.utc) + self.expires,
        }
        return jwt.encode(claims, self.key, algorithm=Algorithm)

    def username(self, token: Optional[str]) -> str:
        """Return the username from a token. Raise AuthError if it is not valid."""
        if token is None or token == "":
            raise AuthError("No authentication cookie")
        try:
            claims: Final[dict[str, Any]] = jwt.decode(token, self.key, algorithms=[Algorithm])
        except ExpiredSignatureError as err:
            raise ExpiredError("Authentication cookie has expired") from err
        except InvalidTokenError as err:
            self.log.error("Authentication failed: %s", err)
            raise AuthError(f"Invalid authentication cookie: {err}") from err

        username = claims.get(UsernameClaim)
        if not isinstance(username, str) or username == "":
            self.log.error("Username claim not found in %s", claims)
            raise AuthError("Username claim not found")
        return username

# Local Variables: #
# python-indent: 4 #
# End: #
