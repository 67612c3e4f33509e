from __future__ import annotations

from prometheus_client import Counter

BINDERS_COMPILED_TOTAL = Counter(
    "reqbind_binders_compiled_total",
    "Request model binders compiled",
    ["model"],
)

BIND_FAILURES_TOTAL = Counter(
    "reqbind_bind_failures_total",
    "Requests rejected because the model could not be filled",
    ["model"],
)
