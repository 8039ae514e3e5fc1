"""Socket/TLS capabilities and the connector."""
