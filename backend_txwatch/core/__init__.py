"""
Core utilities — shared exceptions and cross-cutting concerns.

Error taxonomy used by the webhook pipeline, API server and config layer.
"""
