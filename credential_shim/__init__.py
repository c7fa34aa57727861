"""Credential shim

Exports short-lived AWS credentials from a container credentials endpoint to
a supervised command and keeps them fresh while it runs.
"""
__version__ = "1.0.0"
