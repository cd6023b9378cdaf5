"""Core infrastructure: configuration, logging, KV, rate limiting, idempotency."""
