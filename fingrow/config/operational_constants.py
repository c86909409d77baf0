"""
Operational constants for the Fingrow marketplace.

Technical constants: polling intervals, timeouts and job limits.
"""

# =============================================================================
# EXCHANGE RATE FEED
# =============================================================================

# Live rate poll interval (5 minutes)
RATE_POLL_INTERVAL_SECONDS = 300

# HTTP timeout for a single rate feed request
RATE_FEED_TIMEOUT_SECONDS = 10.0


# =============================================================================
# ORDER LIFECYCLE
# =============================================================================

# Shipped orders without buyer confirmation are delivered by the system
AUTO_DELIVERY_DAYS = 14

# Overdue shipment sweep interval
AUTO_DELIVERY_SWEEP_INTERVAL_SECONDS = 3600

# Max orders handled by one sweep
AUTO_DELIVERY_BATCH_SIZE = 200


# =============================================================================
# DRAMATIQ TIME LIMITS (milliseconds)
# =============================================================================

DRAMATIQ_TIME_LIMIT_SHORT = 60_000
DRAMATIQ_TIME_LIMIT_LONG = 300_000


# =============================================================================
# PAGINATION
# =============================================================================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
