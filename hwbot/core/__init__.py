"""Config, logging, timeline and shared value types."""
