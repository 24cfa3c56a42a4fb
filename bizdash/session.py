"""Last-request-wins state for dashboard refreshes.

A refresh that finishes after a newer one has started is discarded rather
than cancelled; the reads it issued simply run to completion.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, MutableMapping, Optional

from bizdash.errors import DashboardError
from bizdash.filters import DashboardFilters
from bizdash.pipeline import compute_dashboard

logger = logging.getLogger(__name__)


class LatestResultGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._generation = 0

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._generation

    def commit(self, token: int, apply: Callable[[], None]) -> bool:
        """Run ``apply`` only if ``token`` is still the newest generation."""
        with self._lock:
            if token != self._generation:
                return False
            apply()
            return True


@dataclass
class DashboardState:
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    loading: bool = False
    filters: Optional[DashboardFilters] = None


@dataclass
class DashboardSession:
    client: Any
    compute: Callable[..., Dict[str, Any]] = compute_dashboard
    guard: LatestResultGuard = field(default_factory=LatestResultGuard)
    state: DashboardState = field(default_factory=DashboardState)

    def refresh(self, filters: DashboardFilters, **kwargs: Any) -> bool:
        """Recompute for ``filters``; returns False when a newer refresh superseded this one."""
        token = self.guard.begin()
        self.guard.commit(token, lambda: setattr(self.state, "loading", True))
        try:
            result = self.compute(filters, self.client, **kwargs)
        except DashboardError as exc:
            committed = self.guard.commit(token, lambda: self._set(filters, None, str(exc)))
            if not committed:
                logger.debug("Discarded stale error for %s: %s", filters.category, exc)
            return committed
        except Exception:
            self.guard.commit(token, lambda: setattr(self.state, "loading", False))
            raise

        committed = self.guard.commit(token, lambda: self._set(filters, result, None))
        if not committed:
            logger.debug("Discarded stale %s dashboard result", filters.category)
        return committed

    def _set(self, filters: DashboardFilters, result: Optional[Dict[str, Any]], error: Optional[str]) -> None:
        self.state = DashboardState(result=result, error=error, loading=False, filters=filters)


# ---------------- Record forms ----------------
def form_generation(state: MutableMapping[str, Any], form: str) -> int:
    """Suffix for the widget keys of ``form``; a new value gives a blank form."""
    return state.setdefault(f"{form}_form_gen", 0)


def complete_record(state: MutableMapping[str, Any], form: str, category: str, notice: str) -> None:
    """After a successful save: clear the form, queue ``notice`` and force a dashboard reload.

    Failed saves skip this, so the entered values stay in place.
    """
    state[f"{form}_form_gen"] = form_generation(state, form) + 1
    state["records_notice"] = notice
    state.pop(f"filters_{category}", None)
