# Overview: in-process live queries; re-runs a query and pushes the full result after each committed change.

"""
Live query registry.

WHY: Screens keep lists (orders, credit orders, spendings, reports) open and
expect them to refresh on every change without polling.

CONTRACT:
- subscribe() delivers the current result set immediately, then again after
  every notify() for the collection.
- fetch() failures go to on_error(message); the subscription stays active.
- Exceptions raised by on_data/on_error are logged and never reach the
  writer that called notify(), nor the other subscribers.
- The returned unsubscribe() is idempotent. After it returns, no further
  callbacks are delivered for that subscription.

Managers call notify() only after their transaction has committed, so
subscribers never observe rolled-back state.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from typing import Any, Callable

from flask import current_app, has_app_context

COLLECTION_ORDERS = "orders"
COLLECTION_SPENDINGS = "spendings"
COLLECTION_DAILY_REVENUES = "daily_revenues"
COLLECTION_PRODUCTS = "products"
COLLECTION_CATEGORIES = "categories"


@dataclass
class _Subscription:
    id: int
    collection: str
    fetch: Callable[[], Any]
    on_data: Callable[[Any], None]
    on_error: Callable[[str], None] | None
    active: bool = True


_lock = threading.RLock()
_subscriptions: dict[int, _Subscription] = {}
_ids = itertools.count(1)


def subscribe(
    collection: str,
    fetch: Callable[[], Any],
    on_data: Callable[[Any], None],
    on_error: Callable[[str], None] | None = None,
) -> Callable[[], None]:
    """Register a live query and return its unsubscribe function."""
    sub = _Subscription(
        id=next(_ids),
        collection=collection,
        fetch=fetch,
        on_data=on_data,
        on_error=on_error,
    )
    with _lock:
        _subscriptions[sub.id] = sub

    _deliver(sub)

    def unsubscribe() -> None:
        with _lock:
            sub.active = False
            _subscriptions.pop(sub.id, None)

    return unsubscribe


def notify(*collections: str) -> None:
    """Push fresh snapshots to every subscriber of the given collections."""
    wanted = set(collections)
    with _lock:
        targets = [s for s in _subscriptions.values() if s.collection in wanted]
    for sub in targets:
        _deliver(sub)


def active_count(collection: str | None = None) -> int:
    with _lock:
        if collection is None:
            return len(_subscriptions)
        return sum(1 for s in _subscriptions.values() if s.collection == collection)


def _log_warning(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.warning(message, *args)


def _invoke(sub: _Subscription, callback: Callable, payload: Any) -> None:
    try:
        callback(payload)
    except Exception as exc:
        _log_warning("Subscriber callback on %s raised: %s", sub.collection, exc)


def _deliver(sub: _Subscription) -> None:
    if not sub.active:
        return
    try:
        data = sub.fetch()
    except Exception as exc:
        # Live queries report failures through on_error instead of raising into the writer.
        _log_warning("Live query on %s failed: %s", sub.collection, exc)
        if sub.on_error is not None and sub.active:
            _invoke(sub, sub.on_error, str(exc))
        return
    if sub.active:
        _invoke(sub, sub.on_data, data)
