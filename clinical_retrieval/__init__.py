"""Clinical-Retrieval: clinical data retrieval and filtering engine."""

__version__ = "1.0.0"
