"""HTTP API for Messenger."""
