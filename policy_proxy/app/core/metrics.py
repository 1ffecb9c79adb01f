from __future__ import annotations
import threading
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]

# ---------- Primitives ----------


def _key(labels: Optional[Dict[str, str]]) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


def _fmt_labels(key: LabelKey, extra: str = "") -> str:
    parts = [f'{k}="{_escape(v)}"' for k, v in key]
    if extra:
        parts.append(extra)
    return "{" + ",".join(parts) + "}" if parts else ""


def _escape(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class _Metric:
    kind = "untyped"

    def __init__(self, name: str, help_: str = ""):
        self.name = name
        self.help = help_
        self._lock = threading.Lock()

    def header(self) -> str:
        if not self.help:
            return ""
        return f"# HELP {self.name} {self.help}\n# TYPE {self.name} {self.kind}\n"

    def samples(self) -> Iterable[str]:
        return ()

    def render(self) -> Iterable[str]:
        head = self.header()
        if head:
            yield head
        yield from self.samples()


class Counter(_Metric):
    kind = "counter"

    def __init__(self, name: str, help_: str = ""):
        super().__init__(name, help_)
        self._values: Dict[LabelKey, float] = defaultdict(float)

    def inc(self, labels: Optional[Dict[str, str]] = None, by: float = 1) -> None:
        with self._lock:
            self._values[_key(labels)] += by

    def value(self, labels: Optional[Dict[str, str]] = None) -> float:
        with self._lock:
            return self._values.get(_key(labels), 0)

    def samples(self) -> Iterable[str]:
        with self._lock:
            items = sorted(self._values.items())
        for key, v in items:
            yield f"{self.name}{_fmt_labels(key)} {v}\n"


class Gauge(_Metric):
    kind = "gauge"

    def __init__(self, name: str, help_: str = ""):
        super().__init__(name, help_)
        self._values: Dict[LabelKey, float] = {}

    def set(self, value: float, labels: Optional[Dict[str, str]] = None) -> None:
        with self._lock:
            self._values[_key(labels)] = value

    def samples(self) -> Iterable[str]:
        with self._lock:
            items = sorted(self._values.items())
        for key, v in items:
            yield f"{self.name}{_fmt_labels(key)} {v}\n"


class Histogram(_Metric):
    kind = "histogram"
    DEFAULT_BUCKETS = [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1]  # seconds

    def __init__(self, name: str, help_: str = "", buckets: Optional[Iterable[float]] = None):
        super().__init__(name, help_)
        self._buckets = sorted(buckets or self.DEFAULT_BUCKETS)
        self._counts: Dict[LabelKey, List[int]] = {}
        self._sum: Dict[LabelKey, float] = defaultdict(float)
        self._obs: Dict[LabelKey, int] = defaultdict(int)

    def observe(self, value_seconds: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _key(labels)
        with self._lock:
            counts = self._counts.setdefault(key, [0] * (len(self._buckets) + 1))
            self._sum[key] += value_seconds
            self._obs[key] += 1
            for i, b in enumerate(self._buckets):
                if value_seconds <= b:
                    counts[i] += 1
                    break
            else:  # +Inf
                counts[-1] += 1

    def samples(self) -> Iterable[str]:
        with self._lock:
            snapshot = {k: list(v) for k, v in self._counts.items()}
            sums = dict(self._sum)
            obs = dict(self._obs)
        for key in sorted(snapshot):
            running = 0
            # cumulative buckets
            for b, c in zip(self._buckets + [float("inf")], snapshot[key]):
                running += c
                le = "+Inf" if b == float("inf") else f"{b:g}"
                le_label = f'le="{le}"'
                yield f"{self.name}_bucket{_fmt_labels(key, le_label)} {running}\n"
            yield f"{self.name}_sum{_fmt_labels(key)} {sums.get(key, 0.0)}\n"
            yield f"{self.name}_count{_fmt_labels(key)} {obs.get(key, 0)}\n"


# ---------- Registry ----------

class MetricsRegistry:
    def __init__(self):
        self._items: Dict[str, _Metric] = {}
        self._lock = threading.Lock()

    def _register(self, metric: _Metric) -> _Metric:
        with self._lock:
            return self._items.setdefault(metric.name, metric)

    def counter(self, name: str, help_: str = "") -> Counter:
        return self._register(Counter(name, help_))  # type: ignore[return-value]

    def gauge(self, name: str, help_: str = "") -> Gauge:
        return self._register(Gauge(name, help_))  # type: ignore[return-value]

    def histogram(self, name: str, help_: str = "", buckets: Optional[Iterable[float]] = None) -> Histogram:
        return self._register(Histogram(name, help_, buckets=buckets))  # type: ignore[return-value]

    def render_prometheus(self) -> str:
        with self._lock:
            items = list(self._items.values())
        out: list[str] = []
        for it in items:
            out.extend(it.render())
        return "".join(out)


REGISTRY = MetricsRegistry()

# ---------- Proxy metrics ----------

requests_total = REGISTRY.counter("proxy_requests_total", "HTTP requests by route and status")
request_duration = REGISTRY.histogram("proxy_request_duration_seconds", "HTTP request duration in seconds")

menu_cache_lookups = REGISTRY.counter("proxy_menu_cache_total", "Menu cache lookups by result (hit|miss)")
validate_results = REGISTRY.counter("proxy_validate_total", "validateOrder outcomes (ok|rejected)")
accept_results = REGISTRY.counter("proxy_accept_total", "acceptOrder outcomes (created|replayed|rejected)")

menu_cache_size = REGISTRY.gauge("proxy_menu_cache_entries", "Store menus currently cached")
ledger_size = REGISTRY.gauge("proxy_idempotency_entries", "Idempotency keys currently remembered")
