"""Admission control adapters.

This package provides a small abstraction layer so the service can start
with an in-memory, per-process controller and later migrate to Redis or
another shared store without changing the HTTP layer.
"""
