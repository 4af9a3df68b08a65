import logging
from typing import Any, Dict, Optional, Sequence

logger = logging.getLogger(__name__)

def last_sequence_value(code: Any, separator: str = "-") -> int:
    """Integer after the last separator of `code`; 0 when absent or unparsable."""
    if not isinstance(code, str) or not code:
        return 0
    try:
        return int(code.split(separator)[-1])
    except ValueError:
        logger.debug(f"Unparsable sequence code {code!r}, using baseline 0")
        return 0

def next_sequence_number(
    entities: Sequence[Dict[str, Any]],
    prefix: str,
    field: str,
    separator: str = "-",
    width: int = 4,
) -> str:
    """
    Next code after the last entity's `field`, e.g. INV-0007 -> INV-0008.

    Only the last entity by insertion order is consulted, and nothing is
    reserved: two callers asking before either commits get the same number.
    """
    last: Optional[Dict[str, Any]] = entities[-1] if entities else None
    baseline = last_sequence_value(last.get(field), separator) if last else 0
    return f"{prefix}{str(baseline + 1).zfill(width)}"
