"""Lazy reference proxy.

A `LazyReference` stands in for a related entity that has not been loaded yet.
The first attribute access calls the resolver once. Later accesses use the
cached entity, or re-raise the cached error.

    card = LazyReference("IdCard", 7, session.find)
    card.state       # ProxyState.UNRESOLVED, no query issued
    card.active      # resolves through session.find("IdCard", 7)
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

from relmap.exceptions import DanglingReferenceError, NotFoundError

logger = logging.getLogger("RelMap")

Resolver = Callable[[str, Any], Any]

_OWN_ATTRIBUTES = frozenset({"_target_type", "_key", "_resolver", "_state", "_value", "_error", "_lock"})


class ProxyState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class LazyReference:
    """Deferred reference to a related entity.

    Args:
        target_type: Type name of the referenced entity.
        key: Unresolved lookup key, usually the stored foreign-key value.
        resolver: Callable `resolver(target_type, key)` returning the entity.
            Raising `NotFoundError` marks the reference as dangling.
    """

    __slots__ = tuple(_OWN_ATTRIBUTES)

    def __init__(self, target_type: str, key: Any, resolver: Resolver):
        object.__setattr__(self, "_target_type", target_type)
        object.__setattr__(self, "_key", key)
        object.__setattr__(self, "_resolver", resolver)
        object.__setattr__(self, "_state", ProxyState.UNRESOLVED)
        object.__setattr__(self, "_value", None)
        object.__setattr__(self, "_error", None)
        object.__setattr__(self, "_lock", threading.Lock())

    @property
    def target_type(self) -> str:
        return self._target_type

    @property
    def key(self) -> Any:
        """The unresolved key. Reading it never triggers resolution."""
        return self._key

    @property
    def state(self) -> ProxyState:
        return self._state

    @property
    def is_resolved(self) -> bool:
        return self._state is ProxyState.RESOLVED

    def resolve(self) -> Any:
        """Return the referenced entity, resolving it on first call.

        Raises:
            DanglingReferenceError: If the key points to a row that no longer exists.
        """
        if self._state is ProxyState.RESOLVED:
            return self._value
        if self._state is ProxyState.FAILED:
            raise self._error

        with self._lock:
            # another thread may have finished while we waited
            if self._state is ProxyState.RESOLVED:
                return self._value
            if self._state is ProxyState.FAILED:
                raise self._error

            object.__setattr__(self, "_state", ProxyState.RESOLVING)
            logger.debug(f"Resolving lazy reference {self._target_type}({self._key!r})")
            try:
                value = self._resolver(self._target_type, self._key)
            except NotFoundError as e:
                error = DanglingReferenceError(self._target_type, self._key)
                self._fail(error)
                raise error from e
            except Exception as e:
                self._fail(e)
                raise

            object.__setattr__(self, "_value", value)
            object.__setattr__(self, "_state", ProxyState.RESOLVED)
            return value

    def _fail(self, error: Exception) -> None:
        object.__setattr__(self, "_error", error)
        object.__setattr__(self, "_state", ProxyState.FAILED)

    def __getattr__(self, name: str) -> Any:
        # only called for names not found on the proxy itself
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return getattr(self.resolve(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _OWN_ATTRIBUTES:
            raise AttributeError(f"'{name}' is read-only on a lazy reference")
        setattr(self.resolve(), name, value)

    def __repr__(self) -> str:
        return f"<LazyReference {self._target_type}({self._key!r}) {self._state.value}>"
