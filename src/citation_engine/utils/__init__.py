"""Logging, error handling and bookkeeping helpers."""
