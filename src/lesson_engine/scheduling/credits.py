"""
Credit ledger built from credit API responses.

The credits endpoint answers in several shapes depending on the caller
and the API version:

- ARRAY: ``[{"user_id": ..., "balance": ...}, ...]``
- WRAPPED: ``{"balances": [...]}``
- PAGINATED: ``{"data": [...]}`` or ``{"data": {"data": [...]}}``
- SINGLE: ``{"user_id": ..., "balance": ...}`` (non-admin, own balance)

``build`` decodes the shape once and records it on the ledger. An
unrecognized response produces an empty ledger whose ``is_unknown`` flag
is set, so callers can show "credits unknown" instead of zeros.
"""

import logging
import math
import numbers
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..models.intents import CreditIntent
from .identity import clean_id

logger = logging.getLogger(__name__)

_INTEGER_PATTERN = re.compile(r'^[+-]?\d+$')


class ResponseShape(Enum):
    """Detected credit response shape."""
    ARRAY = "array"
    WRAPPED = "wrapped"
    PAGINATED = "paginated"
    SINGLE = "single"
    UNRECOGNIZED = "unrecognized"


def coerce_balance(value: Any) -> int:
    """
    Coerce a raw balance value to an integer.

    Rules:
        - None -> 0
        - integral numbers (int, numpy integers) -> int (negative overdrafts are kept)
        - integral real or Decimal value -> int, any other -> 0
        - string holding an integer -> that integer, otherwise 0
        - bool and anything else -> rejected, 0

    Rejections are logged at WARNING.
    """
    if value is None:
        return 0

    if isinstance(value, bool):
        logger.warning(f"Rejected boolean credit balance: {value!r}")
        return 0

    if isinstance(value, numbers.Integral):
        return int(value)

    if isinstance(value, (numbers.Real, Decimal)):
        finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
        if finite and value == int(value):
            return int(value)
        logger.warning(f"Rejected non-integer credit balance: {value!r}")
        return 0

    if isinstance(value, str):
        text = value.strip()
        if _INTEGER_PATTERN.match(text):
            return int(text)
        logger.warning(f"Rejected non-numeric credit balance: {value!r}")
        return 0

    logger.warning(
        f"Rejected credit balance of type {type(value).__name__}: {value!r}"
    )
    return 0


@dataclass(frozen=True)
class CreditLedger:
    """
    Read-only mapping of student id to credit balance.

    Attributes:
        balances: Balance per student id
        shape: Response shape the ledger was decoded from
    """

    balances: Mapping = field(default_factory=dict)
    shape: ResponseShape = ResponseShape.UNRECOGNIZED

    def __post_init__(self):
        object.__setattr__(self, "balances", MappingProxyType(dict(self.balances)))

    @property
    def is_unknown(self) -> bool:
        """True when no balances are known (empty or unrecognized response)."""
        return len(self.balances) == 0

    def knows(self, student_id: str) -> bool:
        """True when the student's balance was present in the response."""
        return student_id in self.balances

    def apply(self, intent: CreditIntent) -> 'CreditLedger':
        """Return a new ledger with a debit or refund applied."""
        balances = dict(self.balances)
        balances[intent.student_id] = balances.get(intent.student_id, 0) + intent.delta
        return CreditLedger(balances=balances, shape=self.shape)

    def apply_all(self, intents: Iterable[CreditIntent]) -> 'CreditLedger':
        ledger = self
        for intent in intents:
            ledger = ledger.apply(intent)
        return ledger

    def __len__(self) -> int:
        return len(self.balances)

    def to_dict(self) -> Dict[str, int]:
        return dict(self.balances)


def _decode(response: Any) -> Tuple[ResponseShape, List[Any]]:
    if isinstance(response, (list, tuple)):
        return ResponseShape.ARRAY, list(response)

    if not isinstance(response, Mapping):
        return ResponseShape.UNRECOGNIZED, []

    balances = response.get("balances")
    if isinstance(balances, (list, tuple)):
        return ResponseShape.WRAPPED, list(balances)

    data = response.get("data")
    if isinstance(data, (list, tuple)):
        return ResponseShape.PAGINATED, list(data)
    if isinstance(data, Mapping) and isinstance(data.get("data"), (list, tuple)):
        return ResponseShape.PAGINATED, list(data["data"])

    if "user_id" in response:
        return ResponseShape.SINGLE, [response]

    return ResponseShape.UNRECOGNIZED, []


def build(response: Any) -> CreditLedger:
    """
    Build a ledger from any supported credit response shape.

    Entries without ``user_id`` are skipped. Balances are coerced with
    ``coerce_balance``.

    Examples:
        >>> ledger = build({"balances": [{"user_id": "s1", "balance": 5}]})
        >>> balance_of(ledger, "s1")
        5
        >>> build(None).is_unknown
        True
    """
    shape, entries = _decode(response)

    if shape == ResponseShape.UNRECOGNIZED:
        logger.warning(
            f"Unrecognized credit response ({type(response).__name__}); "
            f"credits are unknown"
        )
        return CreditLedger(shape=shape)

    balances: Dict[str, int] = {}
    skipped = 0
    for entry in entries:
        user_id = clean_id(entry.get("user_id")) if isinstance(entry, Mapping) else None
        if user_id is None:
            skipped += 1
            continue
        balances[user_id] = coerce_balance(entry.get("balance"))

    if skipped:
        logger.debug(f"Skipped {skipped} credit entries without user_id")

    if not balances:
        logger.warning(f"Credit response ({shape.value}) contained no balances")

    return CreditLedger(balances=balances, shape=shape)


def balance_of(ledger: Optional[CreditLedger], student_id: Any) -> int:
    """
    Balance of one student; 0 when absent.

    This is the only place a missing balance defaults to zero.
    """
    if ledger is None:
        return 0
    key = clean_id(student_id)
    if key is None:
        return 0
    return ledger.balances.get(key, 0)
