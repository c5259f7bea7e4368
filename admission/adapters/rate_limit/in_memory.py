"""In-memory fixed-window admission controller.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: counters are spread over shards, each guarded by its own lock,
  so unrelated keys never contend on a single mutex.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from admission.adapters.rate_limit.base import AbstractAdmissionController, Decision, Rule
from admission.core.errors import ConfigurationAppError


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


@dataclass
class _Counter:
    window_start: float
    count: int


class _Shard:
    __slots__ = ("lock", "counters")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.counters: dict[tuple[str, str], _Counter] = {}


class InMemoryFixedWindowAdmissionController(AbstractAdmissionController):
    """Admission controller using a fixed time window per (rule, key).

    Each request path is mapped to exactly one rule by longest-prefix match
    over the registered scope patterns (first registered wins on ties),
    falling back to ``default_rule``. Rejected attempts still count against
    the window, so retry storms cannot reset the quota early.

    Important:
        A burst straddling a window boundary may admit up to twice the quota.
    """

    def __init__(
        self,
        *,
        rules: Iterable[Rule],
        default_rule: Rule,
        clock: Callable[[], float] = monotonic_ms,
        shard_count: int = 64,
        sweep_age_factor: float = 2.0,
    ) -> None:
        """Register rules and allocate counter shards.

        Args:
            rules: Scoped rules in registration order.
            default_rule: Catch-all rule used when no scope pattern matches.
            clock: Time source returning milliseconds.
            shard_count: Number of independently locked counter shards.
            sweep_age_factor: Counters older than this many windows are swept.

        Raises:
            ConfigurationAppError: If any rule or tuning value is invalid.
        """
        if shard_count < 1:
            raise ConfigurationAppError(
                code="invalid_shard_count",
                message="shard_count must be >= 1",
                details={"actual_value": shard_count},
            )
        if sweep_age_factor < 1:
            raise ConfigurationAppError(
                code="invalid_sweep_age_factor",
                message="sweep_age_factor must be >= 1",
            )

        self._rules: list[Rule] = []
        self._names: set[str] = set()
        for rule in rules:
            self._register(rule)
        self._register(default_rule)
        self._default_rule = default_rule
        self._rules_by_name = {rule.name: rule for rule in self._rules}

        self._clock = clock
        self._sweep_age_factor = sweep_age_factor
        self._shards = [_Shard() for _ in range(shard_count)]

    def _register(self, rule: Rule) -> None:
        if not rule.name:
            raise ConfigurationAppError(code="invalid_rule", message="rule name must be non-empty")
        if rule.name in self._names:
            raise ConfigurationAppError(
                code="duplicate_rule",
                message=f"rule {rule.name!r} is registered twice",
                details={"rule": rule.name},
            )
        if rule.window_ms <= 0:
            raise ConfigurationAppError(
                code="invalid_rule",
                message=f"rule {rule.name!r}: window_ms must be > 0",
                details={"rule": rule.name, "actual_value": rule.window_ms},
            )
        if rule.max_requests <= 0:
            raise ConfigurationAppError(
                code="invalid_rule",
                message=f"rule {rule.name!r}: max_requests must be > 0",
                details={"rule": rule.name, "actual_value": rule.max_requests},
            )
        self._names.add(rule.name)
        self._rules.append(rule)

    @property
    def rules(self) -> list[Rule]:
        """Registered rules in registration order, default rule last."""
        return list(self._rules)

    def match(self, path: str) -> Rule:
        """Select the rule whose scope pattern is the longest prefix of ``path``."""
        best: Rule | None = None
        for rule in self._rules[:-1]:
            if not path.startswith(rule.scope_pattern):
                continue
            # strict ">" keeps the earliest registration on equal length
            if best is None or len(rule.scope_pattern) > len(best.scope_pattern):
                best = rule
        return best or self._default_rule

    def _shard_for(self, counter_key: tuple[str, str]) -> _Shard:
        return self._shards[hash(counter_key) % len(self._shards)]

    def admit(self, key: str, path: str, timestamp: float | None = None) -> Decision:
        """Record an attempt and return the admission decision.

        This both checks the current window usage and mutates the counter,
        whether or not the attempt is admitted.
        """
        rule = self.match(path)
        now = self._clock() if timestamp is None else timestamp
        counter_key = (rule.name, key)
        shard = self._shard_for(counter_key)

        with shard.lock:
            counter = shard.counters.get(counter_key)
            if counter is None:
                counter = _Counter(window_start=now, count=0)
                shard.counters[counter_key] = counter
            elif now - counter.window_start >= rule.window_ms:
                counter.window_start = now
                counter.count = 0

            previous = counter.count
            counter.count += 1
            reset_at = counter.window_start + rule.window_ms

        reset_after = max(0, math.ceil((reset_at - now) / 1000))

        if previous < rule.max_requests:
            return Decision(
                allowed=True,
                rule=rule.name,
                limit=rule.max_requests,
                remaining=rule.max_requests - previous - 1,
                reset_at_ms=reset_at,
                reset_after_seconds=reset_after,
            )

        return Decision(
            allowed=False,
            rule=rule.name,
            limit=rule.max_requests,
            remaining=0,
            reset_at_ms=reset_at,
            reset_after_seconds=reset_after,
            retry_after_seconds=reset_after,
            message=rule.rejection_message,
        )

    def sweep(self, timestamp: float | None = None) -> int:
        """Remove counters older than ``sweep_age_factor`` windows of their rule."""
        now = self._clock() if timestamp is None else timestamp
        removed = 0
        for shard in self._shards:
            with shard.lock:
                stale = [
                    counter_key
                    for counter_key, counter in shard.counters.items()
                    if now - counter.window_start
                    >= self._sweep_age_factor * self._rules_by_name[counter_key[0]].window_ms
                ]
                for counter_key in stale:
                    del shard.counters[counter_key]
                removed += len(stale)
        return removed

    def counter_count(self) -> int:
        """Return the number of live counters across all shards."""
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.counters)
        return total
