"""Settings and persisted config."""
