"""Hook and behavior registration tables."""

from __future__ import annotations

import itertools
import re
import weakref
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from hookrelay.locking import ReadWriteLock
from hookrelay.models import BehaviorRegistration, HookKind, HookRegistration, fold_name


@dataclass
class _PatternBucket:
    regex: re.Pattern[str]
    entries: list[HookRegistration] = field(default_factory=list)


class HookTable:
    """Registration-ordered storage of exact-name and pattern registrations."""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._exact: dict[str, list[HookRegistration]] = {}
        self._patterns: dict[str, _PatternBucket] = {}
        self._sequence = itertools.count(1)

    def add(
        self,
        name: str,
        kind: HookKind,
        target: str,
        priority: int,
        params: dict[str, Any],
        pattern: bool = False,
    ) -> HookRegistration:
        """Append a registration. Raises ``re.error`` for a bad pattern."""
        # Patterns compile from the verbatim source: folding \D gives \d.
        regex = re.compile(name, re.IGNORECASE) if pattern else None
        with self._lock.write():
            registration = HookRegistration(
                name=fold_name(name),
                kind=kind,
                target=target,
                priority=priority,
                params=params,
                pattern=pattern,
                source=name if pattern else None,
                sequence=next(self._sequence),
            )
            if regex is None:
                self._exact.setdefault(registration.name, []).append(registration)
            else:
                bucket = self._patterns.get(name)
                if bucket is None:
                    bucket = self._patterns[name] = _PatternBucket(regex=regex)
                bucket.entries.append(registration)
        return registration

    def candidates(self, name: str) -> list[HookRegistration]:
        """Exact and matching pattern entries for ``name``, in registration order."""
        folded = fold_name(name)
        with self._lock.read():
            found = list(self._exact.get(folded, ()))
            for bucket in self._patterns.values():
                if bucket.regex.search(folded):
                    found.extend(bucket.entries)
        return sorted(found, key=lambda entry: entry.sequence)

    def registrations(self) -> list[HookRegistration]:
        with self._lock.read():
            everything = [entry for entries in self._exact.values() for entry in entries]
            everything.extend(entry for bucket in self._patterns.values() for entry in bucket.entries)
        return sorted(everything, key=lambda entry: entry.sequence)

    def clear(self) -> None:
        with self._lock.write():
            self._exact.clear()
            self._patterns.clear()


def same_callback(left: Callable[..., Any], right: Callable[..., Any]) -> bool:
    """Identity comparison for callbacks.

    Bound methods are recreated on each attribute access, so two of them are
    the same callback when they wrap the same function on the same object.
    """
    if left is right:
        return True
    left_func = getattr(left, "__func__", None)
    if left_func is None or left_func is not getattr(right, "__func__", None):
        return False
    return getattr(left, "__self__", None) is getattr(right, "__self__", None)


@dataclass
class _OwnerBehaviors:
    # Strong reference, only for owners that cannot be weakly referenced.
    owner: Any
    entries: list[BehaviorRegistration] = field(default_factory=list)


class BehaviorTable:
    """
    Hook registrations scoped to a single owner object, keyed by identity.

    Owners that support weak references are not kept alive by the table: when
    one is collected its entries are discarded before ``id(owner)`` can be
    handed to a new object. Other owners are held strongly while they have
    entries.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._buckets: dict[tuple[str, int], _OwnerBehaviors] = {}
        self._finalizers: dict[int, weakref.finalize] = {}
        # Filled by finalizers, which may run from the garbage collector while
        # this thread holds the lock, so it is drained later under the lock.
        self._collected: deque[int] = deque()

    def add(
        self,
        name: str,
        owner: Any,
        callback: Callable[..., Any],
        priority: int,
    ) -> BehaviorRegistration:
        folded = fold_name(name)
        owner_id = id(owner)
        registration = BehaviorRegistration(
            name=folded,
            owner_id=owner_id,
            callback=callback,
            priority=priority,
        )
        with self._lock.write():
            self._drop_collected()
            bucket = self._buckets.get((folded, owner_id))
            if bucket is None:
                held = owner if not self._track(owner) else None
                bucket = self._buckets[(folded, owner_id)] = _OwnerBehaviors(owner=held)
            bucket.entries.append(registration)
        return registration

    def remove(self, name: str, owner: Any, callback: Callable[..., Any] | None = None) -> bool:
        key = (fold_name(name), id(owner))
        with self._lock.write():
            self._drop_collected()
            bucket = self._buckets.get(key)
            if bucket is None:
                return False
            if callback is None:
                self._discard(key)
                return bool(bucket.entries)
            kept = [entry for entry in bucket.entries if not same_callback(entry.callback, callback)]
            removed = len(kept) != len(bucket.entries)
            if not kept:
                self._discard(key)
            else:
                bucket.entries = kept
            return removed

    def entries(self, name: str, owner: Any) -> list[BehaviorRegistration]:
        if self._collected:
            with self._lock.write():
                self._drop_collected()
        with self._lock.read():
            bucket = self._buckets.get((fold_name(name), id(owner)))
            return list(bucket.entries) if bucket else []

    def __len__(self) -> int:
        if self._collected:
            with self._lock.write():
                self._drop_collected()
        with self._lock.read():
            return sum(len(bucket.entries) for bucket in self._buckets.values())

    def clear(self) -> None:
        with self._lock.write():
            for finalizer in self._finalizers.values():
                finalizer.detach()
            self._finalizers.clear()
            self._collected.clear()
            self._buckets.clear()

    def _track(self, owner: Any) -> bool:
        owner_id = id(owner)
        if owner_id in self._finalizers:
            return True
        try:
            finalizer = weakref.finalize(owner, self._collected.append, owner_id)
        except TypeError:
            return False
        finalizer.atexit = False
        self._finalizers[owner_id] = finalizer
        return True

    def _discard(self, key: tuple[str, int]) -> None:
        del self._buckets[key]
        owner_id = key[1]
        if any(other == owner_id for _, other in self._buckets):
            return
        finalizer = self._finalizers.pop(owner_id, None)
        if finalizer is not None:
            finalizer.detach()

    def _drop_collected(self) -> None:
        while self._collected:
            owner_id = self._collected.popleft()
            self._finalizers.pop(owner_id, None)
            for key in [key for key in self._buckets if key[1] == owner_id]:
                del self._buckets[key]
