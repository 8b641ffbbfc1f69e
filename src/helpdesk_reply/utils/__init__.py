"""Helpers shared by handlers and services."""
