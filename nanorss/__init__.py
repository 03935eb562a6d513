#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 21:10:02 krylon>
#
# /data/code/python/nanorss/__init__.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss

(c) 2026 Benjamin Walkenhorst

A small, self-hosted reader for RSS feeds and monitored web pages.
"""

# Local Variables: #
# python-indent: 4 #
# End: #
