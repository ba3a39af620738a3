"""Scheduling package - Externally triggered maintenance jobs."""
