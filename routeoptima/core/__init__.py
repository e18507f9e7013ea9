"""Core infrastructure: errors, locking, logging."""
