"""Utility modules for the task server."""
