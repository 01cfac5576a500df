"""Distance resolution and market aggregation services."""
