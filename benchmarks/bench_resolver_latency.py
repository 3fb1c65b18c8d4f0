"""Benchmark: PermissionResolver decision latency, with and without a shared context.

Measures per-call latency of PermissionResolver.update() for a subject
that matches through a relationship role, once with a fresh context per
call and once with a per-request AuthorizationContext reused across calls.
"""
from __future__ import annotations

import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from aumos_rpac.contracts import MappingRoleProvider
from aumos_rpac.policies.parser import TablePolicy
from aumos_rpac.resolver.engine import PermissionResolver
from aumos_rpac.store.permission_store import PermissionStore
from aumos_rpac.store.records import PermissionRecord

_WARMUP: int = 100
_ITERATIONS: int = 5_000
_RECORD_COUNT: int = 500  # Unrelated signatures sharing the snapshot.


class _User:
    def __init__(self, user_id: int, roles: list[str]) -> None:
        self.id = user_id
        self.roles = roles


class _Post:
    __rpac_relationships__ = ("owner", "author")

    def __init__(self, owner_id: int) -> None:
        self.owner_id = owner_id
        self.author_id = None
        self.deleted_at = None


def _build_resolver() -> PermissionResolver:
    records = [PermissionRecord("Post:update", "owner")]
    records.extend(
        PermissionRecord(f"Other{i}:update", f"role{i}") for i in range(_RECORD_COUNT)
    )
    return PermissionResolver(
        TablePolicy("Post", roles={"update": ["editor"]}),
        PermissionStore(records=records),
        MappingRoleProvider(),
    )


def _percentile(sorted_lats: list[float], fraction: float) -> float:
    n = len(sorted_lats)
    return sorted_lats[min(int(n * fraction), n - 1)]


def bench_resolver_latency(shared_context: bool = False) -> dict[str, object]:
    """Benchmark PermissionResolver.update() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    resolver = _build_resolver()
    user = _User(1, ["member", "viewer"])
    post = _Post(owner_id=1)
    context = resolver.new_context(user) if shared_context else None

    for _ in range(_WARMUP):
        resolver.update(user, post, context=context)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        resolver.update(user, post, context=context)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    total = sum(latencies_ms) / 1000
    operation = "resolver_update_shared_context" if shared_context else "resolver_update"

    result: dict[str, object] = {
        "operation": operation,
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / len(latencies_ms), 4),
        "p99_latency_ms": round(_percentile(sorted_lats, 0.99), 4),
        "memory_peak_mb": 0.0,
    }
    print(
        f"[bench_resolver_latency] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_resolver_latency()


if __name__ == "__main__":
    results = [bench_resolver_latency(), bench_resolver_latency(shared_context=True)]
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "resolver_latency.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(results, fh, indent=2)
    print(f"Results saved to {output_path}")
