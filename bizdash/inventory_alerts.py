from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from bizdash.backend import read_table
from bizdash.errors import BackendError

logger = logging.getLogger(__name__)

POPUP_KEY_PREFIX = "negOrderPopupDismissed"


def session_popup_key(session: Optional[Mapping[str, Any]]) -> str:
    """Dismissal key, unique per login so a fresh login shows the warning again."""
    if not session or not session.get("loggedIn"):
        return f"{POPUP_KEY_PREFIX}@anon"
    return f"{POPUP_KEY_PREFIX}@{session.get('username') or 'user'}@{session.get('loginAt') or '0'}"


def _name_map(client: Any, table: str) -> Dict[Any, Any]:
    try:
        rows = read_table(client, table, "id,name", order=[("name", False)]).rows
    except BackendError as exc:
        logger.warning("Could not load %s names for the inventory warning: %s", table, exc)
        return {}
    return {r.get("id"): r.get("name") for r in rows}


def load_negative_inventory(client: Any) -> List[Dict[str, Any]]:
    """Order-inventory rows with negative availability, most negative first."""
    try:
        rows = read_table(
            client,
            "order_inventory",
            "id,product_id,client_id,qty_available",
            lt={"qty_available": 0},
            order=[("qty_available", False)],
        ).rows
    except BackendError:
        logger.exception("order_inventory load failed")
        return []

    if not rows:
        return []

    products = _name_map(client, "products")
    clients = _name_map(client, "clients")
    out = []
    for r in rows:
        client_id = r.get("client_id")
        out.append(
            {
                **r,
                "product_name": products.get(r.get("product_id")) or "(Unknown product)",
                "client_name": "-" if client_id is None else clients.get(client_id) or "(Unknown client)",
            }
        )
    return out
