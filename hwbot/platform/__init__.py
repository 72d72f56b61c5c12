"""Browser-facing pieces: the Playwright session and input simulation."""
