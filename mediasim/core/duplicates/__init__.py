"""Near-duplicate clustering."""
