"""Prometheus metrics for the note editor core.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter

# ---------------------------------------------------------------------------
# Persistence metrics
# ---------------------------------------------------------------------------

STORE_WRITES = Counter(
    "noter_store_writes_total",
    "Total writes of the note collection to the durable store",
    ["trigger", "status"],  # trigger: immediate | debounced | manual; status: success | error
)

# ---------------------------------------------------------------------------
# Canvas metrics
# ---------------------------------------------------------------------------

PLACEMENT_FALLBACKS = Counter(
    "noter_placement_fallbacks_total",
    "Placements that exhausted the scan area and used the below-all fallback",
    ["space"],
)

BLOCK_REMOVALS = Counter(
    "noter_block_removals_total",
    "Blocks removed from a note",
    ["reason"],  # explicit, empty
)

# ---------------------------------------------------------------------------
# Assistance metrics
# ---------------------------------------------------------------------------

ASSISTANT_REQUESTS = Counter(
    "noter_assistant_requests_total",
    "Total assistance requests served",
    ["action", "status"],
)
