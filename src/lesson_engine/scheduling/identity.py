"""
Student identifier normalization.

Student ids reach the engine as bare scalars, ``{"id": ...}`` objects
(available-student lists) or ``{"student_id": ...}`` objects (template
rosters, bookings). Every component that compares identities goes
through this module.

Ids are case-sensitive: ``"AbC"`` and ``"abc"`` are different students.
"""

from collections.abc import Mapping
from typing import Any, FrozenSet, Iterable, Optional

_COLLECTIONS = (list, tuple, set, frozenset)


def clean_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _identifier(element: Any) -> Optional[str]:
    if isinstance(element, Mapping):
        # id wins over student_id; falsy ids fall through
        return clean_id(element.get("id")) or clean_id(element.get("student_id"))
    return clean_id(element)


def normalize(ids: Any) -> FrozenSet[str]:
    """
    Canonicalize a collection of student identifiers.

    Args:
        ids: List, tuple or set of scalars and/or id-carrying mappings

    Returns:
        Frozen set of trimmed, non-empty id strings. Anything that is not
        a collection (None, a bare string, a single mapping) yields an
        empty set.

    Examples:
        >>> sorted(normalize([" s1 ", {"id": "s2"}, {"student_id": "s3"}]))
        ['s1', 's2', 's3']
        >>> normalize(None)
        frozenset()
    """
    if not isinstance(ids, _COLLECTIONS):
        return frozenset()

    result = set()
    for element in ids:
        identifier = _identifier(element)
        if identifier is not None:
            result.add(identifier)
    return frozenset(result)


def changed(old_ids: Any, new_ids: Any) -> bool:
    """
    Check whether two rosters differ in membership.

    Order and representation shape are ignored. Two disjoint rosters of
    the same size are reported as changed.
    """
    return bool(normalize(old_ids) ^ normalize(new_ids))


def added(old_ids: Any, new_ids: Any) -> FrozenSet[str]:
    """Ids present in ``new_ids`` but not in ``old_ids``."""
    return normalize(new_ids) - normalize(old_ids)


def removed(old_ids: Any, new_ids: Any) -> FrozenSet[str]:
    """Ids present in ``old_ids`` but not in ``new_ids``."""
    return normalize(old_ids) - normalize(new_ids)


def student_id_of(record: Any) -> Optional[str]:
    """
    Extract the student id of a booking-like record.

    A booking's own ``id`` is the booking id, so only ``student_id``
    (or ``user_id`` for credit rows) is considered.
    """
    if isinstance(record, Mapping):
        return clean_id(record.get("student_id")) or clean_id(record.get("user_id"))
    return clean_id(getattr(record, "student_id", None))


def booking_student_ids(bookings: Optional[Iterable[Any]]) -> FrozenSet[str]:
    """
    Student ids of the active bookings in ``bookings``.

    ``None`` is treated as no bookings. Bookings marked cancelled are
    ignored.
    """
    if bookings is None:
        return frozenset()

    result = set()
    for booking in bookings:
        if _is_cancelled(booking):
            continue
        student_id = student_id_of(booking)
        if student_id is not None:
            result.add(student_id)
    return frozenset(result)


def _is_cancelled(booking: Any) -> bool:
    if isinstance(booking, Mapping):
        status = booking.get("status")
    else:
        status = getattr(booking, "status", None)
    status = getattr(status, "value", status)
    return status == "cancelled"
