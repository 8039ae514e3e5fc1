"""Messages API client and conversation state."""
