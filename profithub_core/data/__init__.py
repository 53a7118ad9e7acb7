"""
Feed data module.

Canonical tick and symbol models plus the Deriv payload parsers and request
builders used by the connection manager.
"""
