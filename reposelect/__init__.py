"""Question-driven file selection for packing repository context."""
