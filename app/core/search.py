import unicodedata
from typing import Any, Dict, Iterable, Sequence, Tuple

# Shared by every list page: OR across fields, substring, case and diacritic insensitive.
# Exact-match narrowing lives in app.core.filtering (AND across fields).

def normalize_text(value: str) -> str:
    """Lowercase `value` and drop combining marks (accents, Arabic harakat)."""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()

def matches_term(entity: Dict[str, Any], normalized_term: str, fields: Iterable[str]) -> bool:
    for field in fields:
        value = entity.get(field)
        if not isinstance(value, str):
            continue
        if normalized_term in normalize_text(value):
            return True
    return False

def search_entities(
    entities: Sequence[Dict[str, Any]],
    term: str,
    fields: Iterable[str],
) -> Tuple[Dict[str, Any], ...]:
    """
    Entities where any of `fields` contains `term`.
    An empty term returns the collection untouched, in the same order.
    """
    if not term or not term.strip():
        return tuple(entities)

    normalized_term = normalize_text(term.strip())
    fields = list(fields)
    return tuple(e for e in entities if matches_term(e, normalized_term, fields))
