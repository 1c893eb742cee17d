"""In-memory circuit breaker for outbound collaborators (process-local).

Keyed by collaborator name (e.g. ``place_lookup:google``) so one misbehaving
provider cannot trip calls to another. Thresholds default to
``config.CIRCUIT_BREAKER`` and are read at call time unless given explicitly.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from business_claims.config import CIRCUIT_BREAKER

CLOSED = "CLOSED"
OPEN = "OPEN"
HALF_OPEN = "HALF_OPEN"


@dataclass
class BreakerState:
    failures: int = 0
    state: str = CLOSED
    opened_at: datetime | None = None
    half_open_probes: int = 0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
        probe_limit: Optional[int] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._probe_limit = probe_limit
        self._clock = clock
        self._states: Dict[str, BreakerState] = {}
        self._lock = threading.Lock()

    @property
    def failure_threshold(self) -> int:
        return int(self._failure_threshold or CIRCUIT_BREAKER["failure_threshold"])

    @property
    def cooldown(self) -> timedelta:
        seconds = self._cooldown_seconds
        if seconds is None:
            seconds = CIRCUIT_BREAKER["open_cooldown_seconds"]
        return timedelta(seconds=seconds)

    @property
    def probe_limit(self) -> int:
        return int(self._probe_limit or CIRCUIT_BREAKER["half_open_probe_count"])

    def _get(self, key: str) -> BreakerState:
        return self._states.setdefault(key, BreakerState())

    def _trip(self, st: BreakerState) -> None:
        st.state = OPEN
        st.opened_at = self._clock()
        st.half_open_probes = 0

    def allow_call(self, key: str) -> tuple[bool, str | None]:
        with self._lock:
            st = self._get(key)
            if st.state == CLOSED:
                return True, None
            if st.state == OPEN:
                if st.opened_at is None or self._clock() - st.opened_at < self.cooldown:
                    return False, "circuit_open"
                st.state = HALF_OPEN
                st.half_open_probes = 0
            if st.half_open_probes >= self.probe_limit:
                return False, "half_open_probe_exhausted"
            st.half_open_probes += 1
            return True, None

    def record_success(self, key: str) -> None:
        with self._lock:
            st = self._get(key)
            st.failures = 0
            st.state = CLOSED
            st.opened_at = None
            st.half_open_probes = 0

    def record_failure(self, key: str) -> None:
        with self._lock:
            st = self._get(key)
            st.failures += 1
            # A failed probe reopens immediately; a closed circuit waits for the threshold
            if st.state == HALF_OPEN or (st.state == CLOSED and st.failures >= self.failure_threshold):
                self._trip(st)

    def state_of(self, key: str) -> str:
        with self._lock:
            st = self._states.get(key)
            return st.state if st else CLOSED

    def reset(self) -> None:
        with self._lock:
            self._states.clear()

    def snapshot(self) -> dict[str, dict[str, object]]:
        with self._lock:
            return {
                k: {
                    "failures": v.failures,
                    "state": v.state,
                    "opened_at": v.opened_at.isoformat() if v.opened_at else None,
                    "half_open_probes": v.half_open_probes,
                }
                for k, v in self._states.items()
            }


GLOBAL_CIRCUIT_BREAKER = CircuitBreaker()

__all__ = ["CircuitBreaker", "GLOBAL_CIRCUIT_BREAKER", "CLOSED", "OPEN", "HALF_OPEN"]
