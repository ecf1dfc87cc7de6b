import logging
from collections import defaultdict
from typing import Any, Callable

import httpx

from espetinhos.config import settings

logger = logging.getLogger(__name__)

ORDER_CLOSED = "order.closed"
CUSTOMER_TRANSACTION_CREATED = "customer_transaction.created"

Listener = Callable[[str, dict], Any]

_listeners: dict[str, list[Listener]] = defaultdict(list)


def subscribe(event: str, listener: Listener) -> None:
    _listeners[event].append(listener)


def unsubscribe(event: str, listener: Listener) -> None:
    if listener in _listeners.get(event, []):
        _listeners[event].remove(listener)


def _webhook_urls() -> list[str]:
    if not settings.WEBHOOK_URLS:
        return []
    return [u.strip() for u in settings.WEBHOOK_URLS.split(",") if u.strip()]


def publish(event: str, payload: dict) -> list[dict]:
    """Tell observers that committed ledger data changed.

    Runs after the commit, so a failing observer is logged and otherwise
    ignored; the settlement it reports on stands.
    """
    for listener in list(_listeners.get(event, [])):
        try:
            listener(event, payload)
        except Exception as e:
            logger.error(f"Listener {listener!r} failed for {event}: {e}")

    urls = _webhook_urls()
    if not urls:
        return []

    body = {"event": event, **payload}
    results = []
    with httpx.Client(timeout=settings.WEBHOOK_TIMEOUT) as client:
        for url in urls:
            try:
                resp = client.post(url, json=body)
                results.append({"url": url, "status": resp.status_code, "success": resp.is_success})
            except httpx.HTTPError as e:
                logger.error(f"Webhook failed for {url}: {e}")
                results.append({"url": url, "status": 0, "success": False, "error": str(e)})

    return results
