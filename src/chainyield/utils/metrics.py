"""
Metrics Module

Prometheus metrics for the aggregation and allocation pipeline.
"""

from prometheus_client import Counter, Histogram
from contextlib import contextmanager
import time
import logging

logger = logging.getLogger(__name__)

OPPORTUNITIES_SKIPPED = Counter(
    'chainyield_opportunities_skipped_total',
    'Raw opportunities or groups dropped during aggregation',
    ['reason']
)

GAS_FALLBACKS = Counter(
    'chainyield_gas_fallbacks_total',
    'Gas estimates that fell back to the conservative default',
    ['chain_id']
)

GAS_CACHE_LOOKUPS = Counter(
    'chainyield_gas_cache_lookups_total',
    'Gas price cache lookups',
    ['result']  # hit, miss
)

AGGREGATION_SECONDS = Histogram(
    'chainyield_aggregation_seconds',
    'Time spent aggregating raw opportunities',
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0)
)

ALLOCATIONS_PLANNED = Counter(
    'chainyield_allocations_planned_total',
    'Allocation plans computed',
    ['risk_tolerance', 'feasible']
)


@contextmanager
def observe_duration(histogram: Histogram):
    """Time a block and record it on the given histogram"""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.observe(time.perf_counter() - start)
