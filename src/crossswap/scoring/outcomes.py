"""Realized transaction outcomes and the running statistics derived from them."""

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Union

logger = logging.getLogger(__name__)


def path_signature(route_path: Union[str, Sequence[str]]) -> str:
    """Normalize a route path to the "A->B" signature used by RouteProposal."""
    if isinstance(route_path, str):
        return "->".join(part.strip() for part in route_path.split("->") if part.strip())
    return "->".join(str(p).strip() for p in route_path)


def _symbol(token) -> str:
    return str(getattr(token, "symbol", token)).strip().upper()


@dataclass(frozen=True)
class TransactionOutcome:
    """One completed or failed swap attempt."""

    from_token: str
    to_token: str
    amount: str
    route_path: str
    duration_seconds: float
    gas_cost: int
    slippage: float  # fraction, 0.005 = 0.5%
    success: bool
    recorded_at: float = field(default_factory=time.time)

    @property
    def pair(self) -> str:
        return f"{self.from_token}->{self.to_token}"


@dataclass
class PathStats:
    """Running aggregates for one route path signature."""

    count: int = 0
    successes: int = 0
    total_gas: int = 0
    total_duration: float = 0.0

    @property
    def success_rate(self) -> float:
        return self.successes / self.count if self.count else 0.0

    @property
    def average_gas(self) -> int:
        return int(self.total_gas / self.count) if self.count else 0

    @property
    def average_duration(self) -> float:
        return self.total_duration / self.count if self.count else 0.0

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "success_rate": round(self.success_rate, 4),
            "average_gas": self.average_gas,
            "average_duration": round(self.average_duration, 2),
        }


class OutcomeRecorder:
    """In-memory outcome log with per-path and per-pair statistics.

    This is a lightweight feedback loop: success rate and average gas per
    path, and realized slippage per pair. No model is trained.
    """

    def __init__(self, max_outcomes: int = 10000, max_slippage_samples: int = 100):
        self.max_slippage_samples = max_slippage_samples
        self._outcomes: deque[TransactionOutcome] = deque(maxlen=max_outcomes)
        self._paths: dict[str, PathStats] = {}
        self._slippage: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def record(
        self,
        from_token,
        to_token,
        amount,
        route_path: Union[str, Sequence[str]],
        duration_seconds: float,
        gas_cost: int,
        slippage: float,
        success: bool,
    ) -> None:
        """Append an outcome and update aggregates. Never raises."""
        try:
            duration = float(duration_seconds)
            realized_slippage = float(slippage)
            if not (math.isfinite(duration) and math.isfinite(realized_slippage)):
                raise ValueError(f"non-finite duration {duration} or slippage {realized_slippage}")
            outcome = TransactionOutcome(
                from_token=_symbol(from_token),
                to_token=_symbol(to_token),
                amount=str(getattr(amount, "value", amount)),
                route_path=path_signature(route_path),
                duration_seconds=max(duration, 0.0),
                gas_cost=max(int(gas_cost), 0),
                slippage=realized_slippage,
                success=bool(success),
            )
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Discarding malformed outcome: {e}")
            return

        try:
            with self._lock:
                self._outcomes.append(outcome)

                stats = self._paths.setdefault(outcome.route_path, PathStats())
                stats.count += 1
                stats.successes += 1 if outcome.success else 0
                stats.total_gas += outcome.gas_cost
                stats.total_duration += outcome.duration_seconds

                if outcome.success:
                    samples = self._slippage.setdefault(
                        outcome.pair, deque(maxlen=self.max_slippage_samples)
                    )
                    samples.append(abs(outcome.slippage))
        except Exception as e:
            logger.error(f"Failed to record outcome: {type(e).__name__}: {e}")
            return

        logger.debug(
            f"Recorded outcome {outcome.pair} via {outcome.route_path or '(unknown)'}: "
            f"success={outcome.success}"
        )

    def path_stats(self, route_path: Union[str, Sequence[str]]) -> Optional[PathStats]:
        """Get a snapshot of the aggregates for a path, or None if unseen."""
        with self._lock:
            stats = self._paths.get(path_signature(route_path))
            return replace(stats) if stats else None

    def slippage_history(self, from_token, to_token) -> list[float]:
        """Realized slippage of successful swaps for a pair, oldest first."""
        key = f"{_symbol(from_token)}->{_symbol(to_token)}"
        with self._lock:
            return list(self._slippage.get(key, ()))

    def outcomes(self) -> list[TransactionOutcome]:
        with self._lock:
            return list(self._outcomes)

    def summary(self) -> dict:
        with self._lock:
            total = len(self._outcomes)
            successes = sum(1 for o in self._outcomes if o.success)
            return {
                "outcomes": total,
                "success_rate": round(successes / total, 4) if total else 0.0,
                "paths": {path: stats.to_dict() for path, stats in self._paths.items()},
            }

    def __len__(self) -> int:
        return len(self._outcomes)
