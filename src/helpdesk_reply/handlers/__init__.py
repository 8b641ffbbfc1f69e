"""Lambda handlers for the reply endpoint."""
