"""Command line parameter parsing helpers."""

from typing import Optional

from clinical_retrieval.domain.models import Code


def parse_context_parameter(parameter: str) -> tuple[str, str]:
    """Parse a ``Name=value`` context parameter.

    ``Patient=123`` yields ``("Patient", "123")``. Only the first ``=`` splits,
    so values may contain ``=``.

    Raises:
        ValueError: If the parameter has no ``=`` or an empty name or value
    """
    if parameter is None or "=" not in parameter:
        raise ValueError(f"Context parameter must have the form Name=value, got {parameter!r}")

    name, _, value = parameter.partition("=")
    name, value = name.strip(), value.strip()
    if not name or not value:
        raise ValueError(f"Context parameter must have the form Name=value, got {parameter!r}")
    return name, value


def parse_code_parameter(parameter: str) -> Code:
    """Parse a ``system|code`` parameter into a Code.

    Raises:
        ValueError: If the parameter has no system or no code
    """
    code = Code.parse(parameter or "")
    if code.code is None or code.system is None:
        raise ValueError(f"Code parameter must have the form system|code, got {parameter!r}")
    return code


def parse_optional_context(parameter: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Like parse_context_parameter, but None yields ``(None, None)``."""
    if parameter is None:
        return None, None
    return parse_context_parameter(parameter)
