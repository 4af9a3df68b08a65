from typing import Any, Dict, Mapping, Sequence, Tuple

ALL = "all"

def active_constraints(filters: Mapping[str, Any]) -> Dict[str, Any]:
    # Empty values and "all" come straight from unselected dropdowns.
    return {k: v for k, v in filters.items() if v and v != ALL}

def filter_entities(
    entities: Sequence[Dict[str, Any]],
    filters: Mapping[str, Any],
) -> Tuple[Dict[str, Any], ...]:
    """Entities whose fields equal every active constraint in `filters`."""
    constraints = active_constraints(filters)
    return tuple(
        e for e in entities
        if all(e.get(field) == value for field, value in constraints.items())
    )
