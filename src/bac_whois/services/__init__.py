"""Discovery services, service dispatch, and protocol error types."""
