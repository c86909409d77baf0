"""
In-process single-writer guard.

Claims a key (order id, new user id) for the duration of a write. A
second writer arriving while the key is held is refused immediately
instead of queueing behind the first one, so it can re-read the record
and decide again.
"""

from collections.abc import Hashable, Iterator
from contextlib import contextmanager

from loguru import logger

from fingrow.utils.exceptions import ConflictError


class KeyGuard:
    """
    Set of keys currently being written.

    One instance is shared by every service handling the same kind of
    record inside a process; cross-process safety comes from the
    conditional UPDATE each writer performs.

    Example:
        guard = KeyGuard("order")
        with guard.hold(order_id):
            ...
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._held: set[Hashable] = set()

    def is_held(self, key: Hashable) -> bool:
        return key in self._held

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """
        Claim ``key`` or fail.

        Raises:
            ConflictError: If another writer holds the key
        """
        if key in self._held:
            logger.warning(
                "Concurrent write refused",
                extra={"guard": self.name, "key": key},
            )
            raise ConflictError(
                f"{self.name} {key} is being modified concurrently",
                key=key,
            )
        self._held.add(key)
        try:
            yield
        finally:
            self._held.discard(key)
