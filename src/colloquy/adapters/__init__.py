"""Transport adapters that produce conversation dialogue."""
