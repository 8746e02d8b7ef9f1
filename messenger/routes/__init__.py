"""HTTP route modules for Messenger."""
