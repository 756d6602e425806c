"""
Permission masks.

A mask is a set of single-character capability flags, for example:

    r  read            w  write           l  list
    d  delete          i  insert          m  manage (projects)
    a  archive         A  accept (tasks)
    b  business data   p  private data    M  mobile numbers

Masks are plain ``frozenset[str]`` values so they hash, compare and combine
like any other set. The meaning of a character is per entity kind; this
module only knows the alphabet.
"""

from __future__ import annotations

import logging
import string
from typing import Iterable

logger = logging.getLogger(__name__)

Mask = frozenset[str]

ALPHABET: frozenset[str] = frozenset(string.ascii_letters)

NO_PERMISSION: Mask = frozenset()
ALL_PERMISSIONS: Mask = ALPHABET

MaskLike = str | Iterable[str] | None


def as_mask(value: MaskLike) -> Mask:
    """
    Coerce a string (``"rw"``) or an iterable of characters into a mask.

    ``None`` and ``""`` both become NO_PERMISSION. Characters outside the
    alphabet are dropped.
    """

    if value is None:
        return NO_PERMISSION
    if isinstance(value, frozenset) and value <= ALPHABET:
        return value

    chars = frozenset(value)
    unknown = chars - ALPHABET
    if unknown:
        logger.warning("Dropping unknown permission characters %s", sorted(unknown))
        chars = chars - unknown
    return chars


def union(*masks: MaskLike) -> Mask:
    result: set[str] = set()
    for m in masks:
        result.update(as_mask(m))
    return frozenset(result)


def union_permissions(masks: Iterable[MaskLike]) -> Mask:
    """Combine permission sets, eg ``["lr", "r", "rw"]`` -> ``{"l", "r", "w"}``."""
    return union(*masks)


def intersect(a: MaskLike, b: MaskLike) -> Mask:
    return as_mask(a) & as_mask(b)


def subtract(requested: MaskLike, available: MaskLike) -> Mask:
    """Return the requested characters which are not available."""
    return as_mask(requested) - as_mask(available)


def contains(mask: MaskLike, char: str) -> bool:
    return char in as_mask(mask)


def contains_all(mask: MaskLike, requested: MaskLike) -> bool:
    return as_mask(requested) <= as_mask(mask)


def is_empty(mask: MaskLike) -> bool:
    return not as_mask(mask)


def to_string(mask: MaskLike) -> str:
    """Deterministic text form (sorted characters)."""
    return "".join(sorted(as_mask(mask)))
