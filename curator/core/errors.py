"""
Error taxonomy for the variables subsystem.
Store and validator raise these; only the manager turns them into messages.
"""

from typing import List, Optional


class TaxonomyError(Exception):
    """Base class for taxonomy failures."""
    code = "TaxonomyError"


class NotFound(TaxonomyError):
    """Unknown category or option id."""
    code = "NotFound"

    def __init__(self, category: str, option_id: Optional[str] = None):
        self.category = category
        self.option_id = option_id
        if option_id is None:
            super().__init__(f"Unknown category: {category}")
        else:
            super().__init__(f"Option '{option_id}' not found in {category}")


class ValidationFailed(TaxonomyError):
    """One or more blocking violations."""
    code = "ValidationFailed"

    def __init__(self, violations: List):
        self.violations = list(violations)
        codes = sorted({v.code for v in self.violations})
        super().__init__(f"Validation failed: {', '.join(codes)}")


class HasDependents(TaxonomyError):
    """Genre delete blocked by subgenres that reference it."""
    code = "HasDependents"

    def __init__(self, option_id: str, dependents: List[str]):
        self.option_id = option_id
        self.dependents = list(dependents)
        super().__init__(f"Genre '{option_id}' has {len(self.dependents)} dependent subgenres")


class Conflict(TaxonomyError):
    """Optimistic revision mismatch."""
    code = "Conflict"

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Revision conflict: read at {expected}, store is at {actual}")


class MalformedDocument(TaxonomyError):
    """Import document could not be parsed."""
    code = "MalformedDocument"
