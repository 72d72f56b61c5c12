"""Browser-side daily automation for the Hero Wars web client."""

__version__ = "1.1.0"
