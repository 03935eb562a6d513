#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:05:37 krylon>
#
# /data/code/python/nanorss/main.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.main

(c) 2026 Benjamin Walkenhorst
"""


import argparse
import logging
import os
import pathlib
import signal
import sys
from threading import Event, Thread
from typing import Final

from nanorss import common
from nanorss.backup import backup, restore
from nanorss.database import Database, DatabaseError
from nanorss.fetcher import Fetcher
from nanorss.model import User
from nanorss.store import StoreError
from nanorss.web import WebUI
from nanorss.worker import Worker

DefaultUsername: Final[str] = "default"
DefaultPassword: Final[str] = "default"


def create_default_user(db: Database) -> None:
    """Create the default user if there are no users yet."""
    if len(db.user_get_all()) > 0:
        return
    log: Final[logging.Logger] = common.get_logger("main")
    log.info("Creating default user %s", DefaultUsername)
    user: Final[User] = User(username=DefaultUsername)
    user.set_password(DefaultPassword)
    db.user_save(user)


def serve(db: Database, address: str, port: int) -> None:
    """Run the fetcher worker and the web server until we get a signal."""
    log: Final[logging.Logger] = common.get_logger("main")
    create_default_user(db)

    fetcher: Final[Fetcher] = Fetcher(db)

    def tick() -> None:
        fetcher.refresh()
        try:
            db.gc()
        except DatabaseError as err:
            log.error("Failed to clean up database: %s", err)

    worker: Final[Worker] = Worker(tick, common.refresh_interval())
    srv: Final[WebUI] = WebUI(db, fetcher, "", address, port)

    done: Final[Event] = Event()

    def quit_handler(signum, _frame) -> None:
        log.info("Received signal %d, shutting down.", signum)
        done.set()

    signal.signal(signal.SIGINT, quit_handler)
    signal.signal(signal.SIGTERM, quit_handler)

    # The web server cannot be stopped in an orderly fashion, it dies with the process.
    Thread(target=srv.run, name="WebUI", daemon=True).start()
    worker.start()

    done.wait()
    worker.stop()


def main() -> None:
    """Run the nanorss application."""
    argp: argparse.ArgumentParser = argparse.ArgumentParser(prog=common.AppName)
    argp.add_argument("directive",
                      nargs="?",
                      choices=["serve", "backup", "restore"],
                      default="serve",
                      help="What to do: run the server, or back up or restore the database")
    argp.add_argument("-f", "--file",
                      type=pathlib.Path,
                      default=common.path.backup,
                      help="The backup file to write or read")
    argp.add_argument("-a", "--address",
                      default="0.0.0.0",
                      help="The IP address(es) or hostname to listen on")
    argp.add_argument("-p", "--port",
                      type=int,
                      default=int(os.environ.get("PORT", common.DefaultPort)),
                      help="The port for the web interface to listen on")
    argp.add_argument("-b", "--basedir",
                      type=pathlib.Path,
                      default=common.path.base(),
                      help="The directory to keep the database and log file in")

    args = argp.parse_args()

    common.set_basedir(args.basedir)
    log: Final[logging.Logger] = common.get_logger("main")

    db: Final[Database] = Database()
    status: int = 0
    try:
        match args.directive:
            case "serve":
                serve(db, args.address, args.port)
            case "backup":
                with open(args.file, "w", encoding="utf-8") as fh:
                    fh.write(backup(db))
                log.info("Wrote backup to %s", args.file)
            case "restore":
                with open(args.file, "r", encoding="utf-8") as fh:
                    restore(db, fh.read())
                log.info("Restored backup from %s", args.file)
    except (common.NanoRSSError, OSError) as err:
        cname: Final[str] = err.__class__.__name__
        log.error("%s running %s: %s", cname, args.directive, err)
        status = 1
    finally:
        try:
            db.close()
        except StoreError as err:
            log.critical("Failed to close database: %s", err)
            sys.exit(1)

    sys.exit(status)


if __name__ == '__main__':
    main()


# Local Variables: #
# python-indent: 4 #
# End: #
