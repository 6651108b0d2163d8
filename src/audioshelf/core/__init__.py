# ABOUTME: Core ingestion and query logic for Audioshelf.
# ABOUTME: Scanner, candidate building, reconciliation, and catalog query/aggregation engines.
