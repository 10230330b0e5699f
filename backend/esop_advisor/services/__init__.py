"""ESOP analytics engine: validation, pricing, PnL, tax and aggregation."""
