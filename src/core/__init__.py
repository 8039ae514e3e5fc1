"""Error taxonomy and chat data model."""
