"""HTTP/1.1 message building and parsing."""
