"""Domain Utilities - identifier and reference string helpers.

These helpers implement the single ``/`` separator rules used when relating a
record to its context. Identifiers with several slashes (``Patient/1/_history/2``)
follow the rules literally; see DESIGN.md for the decision record.
"""

from typing import Optional


def id_part(value: Optional[str]) -> Optional[str]:
    """Return the id portion of an identifier or reference string.

    ``Patient/123`` becomes ``123``; a value without ``/`` is returned as-is.
    The second segment of the ``/`` split is used.

    Parameters:
        value: Identifier or reference string

    Returns:
        Optional[str]: The id portion, or None if ``value`` is None
    """
    if value is None:
        return None
    if "/" in value:
        return value.split("/")[1]
    return value


def strip_reference_prefix(value: Optional[str]) -> Optional[str]:
    """Drop everything up to and including the first ``/``.

    ``Patient/123/_history/2`` becomes ``123/_history/2``.
    """
    if value is None:
        return None
    if "/" in value:
        return value[value.index("/") + 1:]
    return value


def strip_type_prefix(value: str, data_type: Optional[str]) -> str:
    """Remove a leading ``"<data_type>/"`` from ``value`` if present."""
    if data_type:
        prefix = f"{data_type}/"
        if value.startswith(prefix):
            return value[len(prefix):]
    return value
