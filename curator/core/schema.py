"""
Core taxonomy records: options, violations and the category set aggregate.
"""

import copy
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import NotFound

# Export order is this order; insertion order within each category
CATEGORIES: Tuple[str, ...] = ("genres", "subgenres", "moods", "eras", "tempos", "vocals", "languages")

# Child category -> parent category
PARENT_CATEGORY: Dict[str, str] = {"subgenres": "genres"}

SEVERITY_ERROR = "error"
SEVERITY_INFO = "info"


def require_category(category: str) -> str:
    """Return category unchanged or raise NotFound for an unknown one."""
    if category not in CATEGORIES:
        raise NotFound(category)
    return category


@dataclass
class Option:
    id: str
    category: str
    label: str
    parent_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Violation:
    """A single rule failure found by the validator or selection checks."""
    code: str  # DuplicateLabel, DanglingParentReference, ...
    category: str
    option_id: Optional[str]
    message: str
    severity: str = SEVERITY_ERROR

    @property
    def blocking(self) -> bool:
        return self.severity == SEVERITY_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CategorySet:
    """Every category's ordered options plus a parent -> children index.

    ``extra`` carries top-level document fields preserved across import and
    export.
    """

    def __init__(self, options: Iterable[Option] = (), extra: Optional[Dict[str, Any]] = None):
        self._options: Dict[str, List[Option]] = {c: [] for c in CATEGORIES}
        self._by_id: Dict[str, Dict[str, Option]] = {c: {} for c in CATEGORIES}
        self._children: Dict[str, List[str]] = {}
        self.extra: Dict[str, Any] = dict(extra or {})
        for option in options:
            self.put(option)

    def __iter__(self) -> Iterator[Option]:
        for category in CATEGORIES:
            yield from self._options[category]

    def __len__(self) -> int:
        return sum(len(items) for items in self._options.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, CategorySet):
            return NotImplemented
        return self._options == other._options and self.extra == other.extra

    def options(self, category: str) -> List[Option]:
        return list(self._options[require_category(category)])

    def get(self, category: str, option_id: str) -> Optional[Option]:
        return self._by_id[require_category(category)].get(option_id)

    def has(self, category: str, option_id: str) -> bool:
        return option_id in self._by_id[require_category(category)]

    def children_of(self, parent_id: str) -> List[str]:
        """Subgenre ids whose parent is ``parent_id``, in insertion order."""
        return list(self._children.get(parent_id, []))

    def put(self, option: Option) -> Option:
        """Insert, or overwrite in place when the id already exists."""
        category = require_category(option.category)
        existing = self._by_id[category].get(option.id)
        if existing is not None:
            index = self._options[category].index(existing)
            self._options[category][index] = option
            self._by_id[category][option.id] = option
            if existing.parent_id != option.parent_id:
                self._unlink_child(existing)
                self._link_child(option)
            return option
        self._options[category].append(option)
        self._by_id[category][option.id] = option
        self._link_child(option)
        return option

    def remove(self, category: str, option_id: str) -> Option:
        existing = self._by_id[require_category(category)].pop(option_id, None)
        if existing is None:
            raise NotFound(category, option_id)
        self._options[category].remove(existing)
        self._unlink_child(existing)
        return existing

    def remove_many(self, category: str, option_ids: Iterable[str]) -> List[Option]:
        """Remove several options with a single pass over the category list."""
        doomed = set(option_ids)
        removed = [o for o in self._options[require_category(category)] if o.id in doomed]
        if len(removed) != len(doomed):
            missing = doomed - {o.id for o in removed}
            raise NotFound(category, sorted(missing)[0])
        self._options[category] = [o for o in self._options[category] if o.id not in doomed]
        for option in removed:
            del self._by_id[category][option.id]
            self._unlink_child(option)
        return removed

    def replace_category(self, category: str, options: Iterable[Option]):
        for option in self._options[require_category(category)]:
            self._unlink_child(option)
        self._options[category] = []
        self._by_id[category] = {}
        for option in options:
            self.put(option)

    def copy(self) -> "CategorySet":
        """Deep copy used as the staging area for a mutation."""
        return CategorySet((copy.deepcopy(o) for o in self), extra=copy.deepcopy(self.extra))

    def counts(self) -> Dict[str, int]:
        return {c: len(self._options[c]) for c in CATEGORIES}

    def _link_child(self, option: Option):
        if option.category in PARENT_CATEGORY and option.parent_id:
            self._children.setdefault(option.parent_id, []).append(option.id)

    def _unlink_child(self, option: Option):
        if option.category in PARENT_CATEGORY and option.parent_id:
            siblings = self._children.get(option.parent_id, [])
            if option.id in siblings:
                siblings.remove(option.id)
            if not siblings:
                self._children.pop(option.parent_id, None)
