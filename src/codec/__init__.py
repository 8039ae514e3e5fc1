"""JSON codec."""
