#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Time-stamp: <2026-10-19 15:30:19 krylon>
#
# /data/code/python/nanorss/index.py
# created on 19. 10. 2026
# (c) 2026 Benjamin Walkenhorst
#
# This file is part of the nanorss feed reader. It is distributed under the
# terms of the GNU General Public License 3. See the file LICENSE for details
# or find a copy online at https://www.gnu.org/licenses/gpl-3.0

"""
nanorss.index

(c) 2026 Benjamin Walkenhorst

Reference lists: an ordered set of keys, serialized under a single key.
Updates go through a Tx, so they always happen in the same transaction as
the primary records they describe.
"""


import pickle
from typing import Final, Optional, Union

from nanorss.store import Store, StoreError
from nanorss.tx import Tx


class ReferenceListError(StoreError):
    """ReferenceListError indicates a reference list that cannot be decoded."""


def decode(raw: Optional[bytes]) -> list[bytes]:
    """Deserialize a reference list. A missing or empty value is an empty list."""
    if not raw:
        return []
    try:
        refs = pickle.loads(raw)
    except (pickle.PickleError, EOFError, ValueError) as err:
        raise ReferenceListError(f"Cannot decode reference list: {err}") from err
    if not isinstance(refs, list) or not all(isinstance(x, bytes) for x in refs):
        raise ReferenceListError("Reference list is not a list of keys")
    return refs


def encode(refs: list[bytes]) -> bytes:
    """Serialize a reference list."""
    return pickle.dumps(refs)


def members(src: Union[Tx, Store], prefix: bytes) -> list[bytes]:
    """Return the keys in the reference list stored under <prefix>."""
    return decode(src.get(prefix))


def add(tx: Tx, prefix: bytes, key: bytes) -> bool:
    """Append <key> to the list under <prefix>. Return False if it was present already."""
    current: Final[list[bytes]] = members(tx, prefix)
    if key in current:
        return False
    current.append(key)
    tx.put(prefix, encode(current))
    return True


def add_all(tx: Tx, prefix: bytes, new_keys: list[bytes]) -> int:
    """Append every key in <new_keys> that is not in the list under <prefix> yet.

    The list is staged once, however many keys are added. Return the number
    of keys added.
    """
    current: Final[list[bytes]] = members(tx, prefix)
    present: Final[set[bytes]] = set(current)
    cnt: int = 0
    for key in new_keys:
        if key not in present:
            current.append(key)
            present.add(key)
            cnt += 1
    if cnt > 0:
        tx.put(prefix, encode(current))
    return cnt


def remove(tx: Tx, prefix: bytes, key: bytes) -> bool:
    """Remove <key> from the list under <prefix>. Return False if it was not there."""
    current: Final[list[bytes]] = members(tx, prefix)
    if key not in current:
        return False
    current.remove(key)
    if len(current) == 0:
        tx.delete(prefix)
    else:
        tx.put(prefix, encode(current))
    return True

# Local Variables: #
# python-indent: 4 #
# End: #
