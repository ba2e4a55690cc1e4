"""Adapters layer for Clinical-Retrieval.

This module contains the adapters that interface with external systems:
resource stores, FHIR path evaluation, terminology providers and library
sources. Adapters implement Port interfaces defined in the domain layer.
"""
