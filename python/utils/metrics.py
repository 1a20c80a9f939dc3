from prometheus_client import Counter, Gauge

PROCESSED_EVENTS_COUNTER = Counter(
    "indexer_processor_processed_events",
    "Number of event logs processed, by outcome",
    ["processor_name", "outcome"],
)

MALFORMED_EVENTS_COUNTER = Counter(
    "indexer_processor_malformed_events",
    "Number of event logs that failed validation and were skipped",
    ["processor_name", "event_name"],
)

HALTED_LISTINGS_COUNTER = Counter(
    "indexer_auctionhouse_halted_listings",
    "Number of listings whose processing was halted by an out of order event",
    ["processor_name"],
)

LATEST_PROCESSED_BLOCK = Gauge(
    "indexer_processor_latest_block",
    "Latest processed block",
    ["processor_name"],
)
