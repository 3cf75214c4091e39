"""
Selection rules - how many options of each category a playlist may pick.
Languages are single-select; subgenres, moods and eras have minimums.
"""

from typing import Dict, List, Optional, Tuple

from .errors import NotFound
from .schema import CATEGORIES, CategorySet, Violation

# category -> (minimum, maximum); None means unbounded
SELECTION_RULES: Dict[str, Tuple[int, Optional[int]]] = {
    "genres": (0, None),
    "subgenres": (3, None),
    "moods": (1, None),
    "eras": (1, None),
    "tempos": (0, None),
    "vocals": (0, None),
    "languages": (1, 1),
}


def is_single_select(category: str) -> bool:
    return SELECTION_RULES[category][1] == 1


def check_selection(category_set: CategorySet, selections: Dict[str, List[str]]) -> List[Violation]:
    """
    Check a playlist's chosen option ids against the category set.

    Categories missing from ``selections`` count as empty. Unknown category
    names raise NotFound.
    """
    for category in selections:
        if category not in CATEGORIES:
            raise NotFound(category)

    violations = []
    for category in CATEGORIES:
        chosen = list(dict.fromkeys(selections.get(category) or []))

        for option_id in chosen:
            if not category_set.has(category, option_id):
                violations.append(Violation(
                    code="UnknownOption",
                    category=category,
                    option_id=option_id,
                    message=f"'{option_id}' is not a {category} option",
                ))

        minimum, maximum = SELECTION_RULES[category]
        if len(chosen) < minimum:
            violations.append(Violation(
                code="TooFewSelections",
                category=category,
                option_id=None,
                message=f"Select at least {minimum} {category} (got {len(chosen)})",
            ))
        if maximum is not None and len(chosen) > maximum:
            violations.append(Violation(
                code="TooManySelections",
                category=category,
                option_id=None,
                message=f"Select at most {maximum} {category} (got {len(chosen)})",
            ))

    return violations
