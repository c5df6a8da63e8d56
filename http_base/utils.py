"""
udi-http-co2-pg3x NodeServer/Plugin for EISY/Polisy

(C) 2025

http_base utils
"""

# std libraries
import math
import re
from typing import Optional, Union

# external libraries
pass

# personal libraries
pass


class PatternError(Exception):
    """Raised when a pattern does not yield a value from a body."""


def extract_value_from_pattern(pattern, body: str, group: int = 1) -> str:
    """Applies pattern to body and returns the requested capture group.

    Args:
        pattern: Compiled regular expression (or pattern string).
        body: Text to search.
        group: Index of the capture group to return.

    Raises:
        PatternError: No match, or the group does not exist / did not match.
    """
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    if body is None:
        body = ""
    match = pattern.search(body)
    if match is None:
        raise PatternError(f"Pattern didn't match (value: '{body}', pattern: '{pattern.pattern}')")
    if group < 0 or group > pattern.groups:
        raise PatternError(f"Pattern group {group} is out of range (pattern has {pattern.groups} groups)")
    value = match.group(group)
    if value is None:
        raise PatternError(f"Pattern group {group} did not participate in the match")
    return value


def get_characteristic(node, name: Optional[str]) -> Optional[str]:
    """Resolves a characteristic name to the node driver that holds it."""
    if not name:
        return None
    return getattr(node, "characteristics", {}).get(name)


def to_number(value) -> Union[int, float]:
    """Converts a textual or numeric reading to int when integral, else float.

    Raises:
        ValueError: value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        number = value
    else:
        number = float(str(value).strip())
    if isinstance(number, float) and not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number
