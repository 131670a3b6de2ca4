"""
Prometheus metrics for monitoring API performance and behavior.
"""
from prometheus_client import Counter, Histogram

# Request metrics
location_reports_total = Counter(
    'location_reports_total',
    'Total number of location reports received',
    ['status']
)

location_queries_total = Counter(
    'location_queries_total',
    'Total number of location query requests',
    ['endpoint', 'status']
)

# Latency metrics
request_duration_seconds = Histogram(
    'request_duration_seconds',
    'Request latency in seconds',
    ['endpoint']
)

# Retention metrics
records_evicted_total = Counter(
    'records_evicted_total',
    'Total number of location records removed by retention trims'
)

# Store metrics
store_operations_total = Counter(
    'store_operations_total',
    'Total backing store operations',
    ['operation', 'status']
)
