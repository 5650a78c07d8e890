# ============================================================================
# RESPONSE COLLECTION
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Core model - Ordered dispatch results
# PURPOSE: Collect implementation and listener return values in call order
# CREATED: 19 OCT 2026
# EXPORTS: ResponseCollection
# ============================================================================
"""
Response Collection

Ordered sequence of raw return values plus a ``stopped`` flag telling
whether the chain was halted early (by the until-predicate or by a
listener stopping propagation).
"""

from typing import Any, Iterable, Iterator, List, Optional


class ResponseCollection:
    """Ordered responses of one dispatch or event trigger."""

    def __init__(self, responses: Optional[Iterable[Any]] = None, stopped: bool = False):
        self._responses: List[Any] = list(responses or [])
        self._stopped = stopped

    def push(self, value: Any) -> None:
        """Append a response."""
        self._responses.append(value)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def set_stopped(self, flag: bool = True) -> None:
        self._stopped = bool(flag)

    def first(self) -> Any:
        """First response, or None when empty."""
        return self._responses[0] if self._responses else None

    def last(self) -> Any:
        """Last response, or None when empty."""
        return self._responses[-1] if self._responses else None

    def count(self) -> int:
        return len(self._responses)

    def is_empty(self) -> bool:
        return not self._responses

    def contains(self, value: Any) -> bool:
        return value in self._responses

    def to_list(self) -> List[Any]:
        return list(self._responses)

    def __len__(self) -> int:
        return len(self._responses)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._responses)

    def __getitem__(self, index: int) -> Any:
        return self._responses[index]

    def __repr__(self) -> str:
        return f"ResponseCollection({self._responses!r}, stopped={self._stopped})"


__all__ = ["ResponseCollection"]
