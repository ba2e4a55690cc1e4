"""Infrastructure layer for Clinical-Retrieval.

Configuration, logging, HTTP sessions and the injected translation cache.
"""
