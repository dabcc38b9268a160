"""Travel agency backend API."""
