"""
Batch operations.

Each subpackage provides an operation.py exposing get_operation(), which the
CLI uses for auto-discovery.
"""
