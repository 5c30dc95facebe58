"""Order aggregate: items and totals, tracking numbers, lifecycle service."""
