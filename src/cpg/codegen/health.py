# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Per-provider rate limiting and circuit breaker state."""

import logging
import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class ProviderHealthState:
    """Track usage and failures of one provider.

    Attributes:
        last_used: Timestamp of the last recorded request.
        request_count: Requests recorded in the current window.
        reset_time: Timestamp at which the current window ends.
        consecutive_failures: Failures since the last success.
        circuit_breaker_until: Timestamp until which the provider is blocked.
    """

    last_used: float
    request_count: int
    reset_time: float
    consecutive_failures: int = 0
    circuit_breaker_until: float = 0.0


@dataclass(frozen=True)
class HealthPolicy:
    """Describe rate limit and circuit breaker timings, in seconds."""

    window_seconds: float = 60.0
    usage_ratio: float = 0.9
    failure_threshold: int = 5
    failure_cooldown_seconds: float = 60.0
    rate_limit_cooldown_seconds: float = 120.0


class ProviderHealthRegistry:
    """Hold health state for every provider of a process.

    A single registry is shared by every orchestrator in the process. Each
    provider's state is only read or written while holding that provider's
    lock.
    """

    def __init__(
        self,
        policy: HealthPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the registry.

        Args:
            policy: Timing policy; defaults to ``HealthPolicy()``.
            clock: Source of timestamps in seconds.
        """
        self._policy = policy or HealthPolicy()
        self._clock = clock
        self._states: dict[str, ProviderHealthState] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def policy(self) -> HealthPolicy:
        """Return the timing policy."""
        return self._policy

    def safe_limit(self, rate_limit_per_minute: int) -> int:
        """Return the number of requests allowed per window."""
        return max(1, math.floor(rate_limit_per_minute * self._policy.usage_ratio))

    def can_use(self, provider_id: str, rate_limit_per_minute: int) -> bool:
        """Check whether a provider may be called now.

        A provider seen for the first time is always usable. An elapsed
        window resets the request count.

        Args:
            provider_id: Provider model identifier.
            rate_limit_per_minute: Provider's published per-minute limit.

        Returns:
            False while the circuit breaker is open or the window budget is
            spent.
        """
        with self._lock_for(provider_id):
            now = self._clock()
            state = self._states.get(provider_id)
            if state is None:
                self._states[provider_id] = self._new_state(now)
                return True
            if state.circuit_breaker_until > now:
                logger.debug(
                    f"Circuit breaker open (provider={provider_id} "
                    f"remaining={state.circuit_breaker_until - now:.1f}s)"
                )
                return False
            if now >= state.reset_time:
                state.request_count = 0
                state.reset_time = now + self._policy.window_seconds
                state.last_used = now
                return True
            limit = self.safe_limit(rate_limit_per_minute)
            if state.request_count < limit:
                return True
            logger.debug(
                f"Rate limit budget spent (provider={provider_id} "
                f"requests={state.request_count}/{limit})"
            )
            return False

    def is_available(self, provider_id: str, rate_limit_per_minute: int) -> bool:
        """Report whether ``can_use`` would pass, without touching any state."""
        with self._lock_for(provider_id):
            state = self._states.get(provider_id)
            if state is None:
                return True
            now = self._clock()
            if state.circuit_breaker_until > now:
                return False
            if now >= state.reset_time:
                return True
            return state.request_count < self.safe_limit(rate_limit_per_minute)

    def mark_used(self, provider_id: str) -> None:
        """Record one request against the provider's window."""
        with self._lock_for(provider_id):
            state = self._state(provider_id)
            state.request_count += 1
            state.last_used = self._clock()

    def mark_success(self, provider_id: str) -> None:
        """Clear failures and close the circuit breaker."""
        with self._lock_for(provider_id):
            state = self._state(provider_id)
            state.consecutive_failures = 0
            state.circuit_breaker_until = 0.0

    def mark_failed(self, provider_id: str, is_rate_limit: bool = False) -> None:
        """Record a failure and open the circuit breaker when warranted.

        Args:
            provider_id: Provider model identifier.
            is_rate_limit: Whether the failure was rate-limit classified.
        """
        with self._lock_for(provider_id):
            state = self._state(provider_id)
            state.consecutive_failures += 1
            now = self._clock()
            if is_rate_limit:
                state.circuit_breaker_until = now + self._policy.rate_limit_cooldown_seconds
                logger.warning(
                    f"Circuit breaker opened after rate limit (provider={provider_id} "
                    f"seconds={self._policy.rate_limit_cooldown_seconds:.0f})"
                )
            elif state.consecutive_failures >= self._policy.failure_threshold:
                state.circuit_breaker_until = now + self._policy.failure_cooldown_seconds
                logger.warning(
                    f"Circuit breaker opened after failures (provider={provider_id} "
                    f"failures={state.consecutive_failures} "
                    f"seconds={self._policy.failure_cooldown_seconds:.0f})"
                )

    def wait_time(self, provider_id: str) -> float:
        """Return seconds until the provider may be used again."""
        with self._lock_for(provider_id):
            state = self._states.get(provider_id)
            if state is None:
                return 0.0
            now = self._clock()
            if state.circuit_breaker_until > now:
                return state.circuit_breaker_until - now
            return max(0.0, state.reset_time - now)

    def breaker_open(self, provider_id: str) -> bool:
        """Return whether the provider's circuit breaker is currently open."""
        with self._lock_for(provider_id):
            state = self._states.get(provider_id)
            return state is not None and state.circuit_breaker_until > self._clock()

    def snapshot(self, provider_id: str) -> ProviderHealthState | None:
        """Return a copy of the provider's state, or ``None`` if unseen."""
        with self._lock_for(provider_id):
            state = self._states.get(provider_id)
            return replace(state) if state is not None else None

    def _lock_for(self, provider_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(provider_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[provider_id] = lock
            return lock

    def _state(self, provider_id: str) -> ProviderHealthState:
        """Return existing state, creating it lazily. Caller holds the lock."""
        state = self._states.get(provider_id)
        if state is None:
            state = self._new_state(self._clock())
            self._states[provider_id] = state
        return state

    def _new_state(self, now: float) -> ProviderHealthState:
        return ProviderHealthState(
            last_used=now,
            request_count=0,
            reset_time=now + self._policy.window_seconds,
        )
