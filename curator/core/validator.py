"""
Taxonomy validation - referential and uniqueness rules across a category set.
Runs before every store mutation and before an import is committed.
"""

from typing import Dict, List, Tuple

from .schema import (
    CATEGORIES,
    PARENT_CATEGORY,
    SEVERITY_INFO,
    CategorySet,
    Violation,
)

# Attributes a category's options must carry in ``extra``
REQUIRED_ATTRIBUTES: Dict[str, Tuple[str, ...]] = {"tempos": ("bpmRange",)}


def validate(category_set: CategorySet) -> List[Violation]:
    """
    Check every rule against the whole category set.

    Rules:
    1. DanglingParentReference - each subgenre's parent resolves to a genre
    2. DuplicateLabel - labels unique (case-insensitive) per category, and per
       parent for subgenres
    3. UnexpectedParentReference - parent set outside subgenres (info only)
    4. EmptyId, EmptyLabel, MissingAttribute - document hygiene

    Returns:
        Violations in category order; empty when the set is valid.
    """
    violations = []
    for category in CATEGORIES:
        options = category_set.options(category)
        violations.extend(_check_ids_and_labels(category, options))
        violations.extend(_check_parents(category_set, category, options))
        violations.extend(_check_attributes(category, options))
    return violations


def blocking(violations: List[Violation]) -> List[Violation]:
    """Only the violations that must reject a mutation."""
    return [v for v in violations if v.blocking]


def normalize_label(label: str) -> str:
    return " ".join(label.split()).casefold()


def duplicate_ids(category: str, options) -> List[Violation]:
    """DuplicateId violations for a raw option list.

    A CategorySet keys options by id, so duplicates can only be seen before
    the list is loaded into one (import documents).
    """
    violations = []
    seen_ids = set()
    for option in options:
        if option.id in seen_ids:
            violations.append(Violation(
                code="DuplicateId",
                category=category,
                option_id=option.id,
                message=f"Duplicate id '{option.id}' in {category}",
            ))
        seen_ids.add(option.id)
    return violations


def _check_ids_and_labels(category: str, options) -> List[Violation]:
    violations = []
    seen_labels = {}

    for option in options:
        if not option.id or not option.id.strip():
            violations.append(Violation(
                code="EmptyId",
                category=category,
                option_id=option.id,
                message=f"Option '{option.label}' in {category} has an empty id",
            ))

        if not option.label or not option.label.strip():
            violations.append(Violation(
                code="EmptyLabel",
                category=category,
                option_id=option.id,
                message=f"Option '{option.id}' in {category} has an empty label",
            ))
            continue

        scope = option.parent_id if category in PARENT_CATEGORY else None
        key = (scope, normalize_label(option.label))
        if key in seen_labels:
            where = f"{category} under '{scope}'" if scope else category
            violations.append(Violation(
                code="DuplicateLabel",
                category=category,
                option_id=option.id,
                message=f"Label '{option.label}' already used by '{seen_labels[key]}' in {where}",
            ))
        else:
            seen_labels[key] = option.id

    return violations


def _check_parents(category_set: CategorySet, category: str, options) -> List[Violation]:
    violations = []
    parent_category = PARENT_CATEGORY.get(category)

    for option in options:
        if parent_category is None:
            if option.parent_id:
                violations.append(Violation(
                    code="UnexpectedParentReference",
                    category=category,
                    option_id=option.id,
                    message=f"'{option.id}' in {category} references parent '{option.parent_id}', which is ignored",
                    severity=SEVERITY_INFO,
                ))
            continue

        if not option.parent_id or not category_set.has(parent_category, option.parent_id):
            violations.append(Violation(
                code="DanglingParentReference",
                category=category,
                option_id=option.id,
                message=f"'{option.id}' references missing {parent_category} option '{option.parent_id}'",
            ))

    return violations


def _check_attributes(category: str, options) -> List[Violation]:
    violations = []
    for name in REQUIRED_ATTRIBUTES.get(category, ()):
        for option in options:
            value = option.extra.get(name)
            if not isinstance(value, str) or not value.strip():
                violations.append(Violation(
                    code="MissingAttribute",
                    category=category,
                    option_id=option.id,
                    message=f"'{option.id}' in {category} must have a non-empty {name}",
                ))
    return violations
