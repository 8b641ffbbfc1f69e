"""Persistence adapters: SQL ticket store, S3 attachments, DynamoDB sessions."""
