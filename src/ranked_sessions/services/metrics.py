"""In-memory counters exposed to an external metrics collector."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Protocol

SUSPICIOUS_RANKED_ACTIVITY = "suspicious_ranked_activity_total"
RANKED_MATCH_RESULTS = "ranked_match_results_total"
RATING_UPDATES = "rating_updates_total"
TIER_PROMOTIONS = "tier_promotions_total"

_HELP = {
    SUSPICIOUS_RANKED_ACTIVITY: "Ranked submissions rejected by anti-abuse gates",
    RANKED_MATCH_RESULTS: "Ranked match results accepted",
    RATING_UPDATES: "Participant rating updates applied",
    TIER_PROMOTIONS: "Participants promoted to a higher tier",
}

LabelKey = tuple[tuple[str, str], ...]


class MetricsSink(Protocol):
    """Counter interface used by the services."""

    def increment(
        self, name: str, amount: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        """Increase a monotonic counter."""


@dataclass
class InMemoryMetrics(MetricsSink):
    """Counter store rendered on demand for scraping."""

    _counters: dict[str, dict[LabelKey, int]] = field(
        default_factory=lambda: defaultdict(dict), init=False, repr=False
    )

    def increment(
        self, name: str, amount: int = 1, labels: dict[str, str] | None = None
    ) -> None:
        """Increase a counter; negative amounts are rejected."""
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = _label_key(labels)
        series = self._counters[name]
        series[key] = series.get(key, 0) + amount

    def value(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Return the current value for one label set."""
        return self._counters.get(name, {}).get(_label_key(labels), 0)

    def total(self, name: str) -> int:
        """Return the sum across all label sets."""
        return sum(self._counters.get(name, {}).values())

    def to_prometheus(self) -> str:
        """Render counters in the Prometheus text exposition format."""
        lines: list[str] = []
        for name in sorted(self._counters):
            lines.append(f"# HELP {name} {_HELP.get(name, 'Counter metric')}")
            lines.append(f"# TYPE {name} counter")
            for key, count in sorted(self._counters[name].items()):
                if key:
                    rendered = ",".join(f'{label}="{value}"' for label, value in key)
                    lines.append(f"{name}{{{rendered}}} {count}")
                else:
                    lines.append(f"{name} {count}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Return counters keyed by name and rendered label set."""
        result: dict[str, dict[str, int]] = {}
        for name, series in self._counters.items():
            result[name] = {
                ",".join(f"{label}={value}" for label, value in key) or "_total": count
                for key, count in series.items()
            }
        return result


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted((labels or {}).items()))
