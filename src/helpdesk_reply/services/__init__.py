"""Business logic services used by handlers.

Services are imported lazily by handlers to avoid import-time connections
to the database and AWS.
"""
