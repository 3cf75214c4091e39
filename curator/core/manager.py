"""
Variables manager - the CRUD façade the admin UI talks to.

Every write stages a copy of the category set, applies the change, validates
the whole set and only then commits to the store at the revision the copy
was read at:

    Staged -> Validated -> Committed
    Staged -> Rejected

Store and validator errors propagate unchanged; describe_error() is the one
place they become caller-facing messages.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from . import codec
from .defaults import default_options, primary_genres
from .errors import Conflict, HasDependents, MalformedDocument, NotFound, TaxonomyError, ValidationFailed
from .schema import PARENT_CATEGORY, CategorySet, Option, Violation, require_category
from .selection import check_selection
from .store import VariableStore
from .validator import blocking, validate
from util.logging import logger

# Parent category -> child category
CHILD_CATEGORY = {parent: child for child, parent in PARENT_CATEGORY.items()}

PATCH_FIELDS = ("label", "parent_id", "extra")

ERROR_HINTS = {
    NotFound.code: "Check the category name and option id.",
    ValidationFailed.code: "Fix the listed problems and submit again.",
    HasDependents.code: "Delete the subgenres first or confirm a cascade delete.",
    Conflict.code: "The variables changed since you loaded them. Reload and retry.",
    MalformedDocument.code: "Upload a JSON document exported from the variables page.",
}


@dataclass
class MutationResult:
    revision: int
    option: Optional[Option] = None
    removed: List[Option] = field(default_factory=list)


@dataclass
class ImportResult:
    revision: int
    counts: Dict[str, int]
    violations: List[Violation] = field(default_factory=list)


class VariablesManager:
    def __init__(self, store: VariableStore):
        self.store = store

    # Reads

    def revision(self) -> int:
        return self.store.revision()

    def list_options(self, category: str) -> List[Option]:
        return self.store.list(category)

    def get_option(self, category: str, option_id: str) -> Option:
        return self.store.get(category, option_id)

    def list_subgenres(self, parent_id: Optional[str] = None) -> List[Option]:
        if parent_id is None:
            return self.store.list("subgenres")
        return self.store.list_children(parent_id)

    def counts(self) -> Dict[str, int]:
        category_set, _ = self.store.snapshot()
        return category_set.counts()

    def primary_genres(self) -> List[str]:
        category_set, _ = self.store.snapshot()
        return primary_genres(category_set)

    def check_selection(self, selections: Dict[str, List[str]]) -> List[Violation]:
        category_set, _ = self.store.snapshot()
        return check_selection(category_set, selections)

    # Writes

    def create_option(self, category: str, label: str, parent_id: Optional[str] = None,
                      extra: Optional[Dict[str, Any]] = None,
                      expected_revision: Optional[int] = None) -> MutationResult:
        require_category(category)
        staged, revision = self._stage("create", expected_revision)

        label = (label or "").strip()
        option = Option(
            id=_unique_id(staged, category, label),
            category=category,
            label=label,
            parent_id=parent_id or None,
            extra=dict(extra or {}),
        )
        staged.put(option)

        new_revision = self._commit("create", staged, revision, puts=[option])
        logger.log_option_change("create", category, option.id, new_revision)
        return MutationResult(revision=new_revision, option=option)

    def update_option(self, category: str, option_id: str, patch: Dict[str, Any],
                      expected_revision: Optional[int] = None) -> MutationResult:
        """Apply ``patch`` (label, parent_id, extra) to an existing option.

        ``extra`` is merged key by key; a None value removes that key.
        """
        unknown = set(patch) - set(PATCH_FIELDS)
        if unknown:
            raise ValueError(f"Cannot patch fields: {', '.join(sorted(unknown))}")

        require_category(category)
        staged, revision = self._stage("update", expected_revision)
        current = staged.get(category, option_id)
        if current is None:
            raise NotFound(category, option_id)

        extra = dict(current.extra)
        for key, value in (patch.get("extra") or {}).items():
            if value is None:
                extra.pop(key, None)
            else:
                extra[key] = value

        updated = Option(
            id=current.id,
            category=category,
            label=patch["label"].strip() if patch.get("label") is not None else current.label,
            parent_id=(patch["parent_id"] or None) if "parent_id" in patch else current.parent_id,
            extra=extra,
        )
        staged.put(updated)

        new_revision = self._commit("update", staged, revision, puts=[updated])
        logger.log_option_change("update", category, option_id, new_revision, {"fields": sorted(patch)})
        return MutationResult(revision=new_revision, option=updated)

    def delete_option(self, category: str, option_id: str, cascade: bool = False,
                      expected_revision: Optional[int] = None) -> MutationResult:
        """Delete an option; a genre with subgenres needs ``cascade=True``."""
        require_category(category)
        staged, revision = self._stage("delete", expected_revision)
        if not staged.has(category, option_id):
            raise NotFound(category, option_id)

        child_category = CHILD_CATEGORY.get(category)
        dependents = staged.children_of(option_id) if child_category else []
        if dependents and not cascade:
            logger.log_operation("variables.delete", "rejected", {
                "category": category, "option_id": option_id, "dependents": len(dependents)
            })
            raise HasDependents(option_id, dependents)

        removed = [staged.remove(category, option_id)]
        deletes = [(category, option_id)]
        if dependents:
            removed.extend(staged.remove_many(child_category, dependents))
            deletes.extend((child_category, child_id) for child_id in dependents)

        new_revision = self._commit("delete", staged, revision, deletes=deletes)
        logger.log_option_change("delete", category, option_id, new_revision, {
            "cascade": cascade, "removed": len(removed)
        })
        return MutationResult(revision=new_revision, removed=removed)

    def reset_category(self, category: str, expected_revision: Optional[int] = None) -> MutationResult:
        """Replace one category with its default options."""
        require_category(category)
        staged, revision = self._stage("reset", expected_revision)
        removed = staged.options(category)
        defaults = default_options(category)
        staged.replace_category(category, defaults)

        new_revision = self._commit(
            "reset", staged, revision,
            puts=defaults,
            deletes=[(category, o.id) for o in removed],
        )
        logger.log_option_change("reset", category, "*", new_revision, {"options": len(defaults)})
        return MutationResult(revision=new_revision, removed=removed)

    # Import / export

    def export_document(self) -> Tuple[str, int]:
        category_set, revision = self.store.snapshot()
        document = codec.export(category_set, revision)
        logger.log_export(revision, len(document.encode("utf-8")))
        return document, revision

    def import_document(self, text: str, expected_revision: Optional[int] = None) -> ImportResult:
        try:
            category_set, violations, new_revision = codec.import_document(self.store, text, expected_revision)
        except Conflict as e:
            logger.log_conflict("import", e.expected, e.actual)
            raise
        except MalformedDocument as e:
            logger.log_operation("variables.import", "failed", {"reason": str(e)[:100]})
            raise

        if new_revision is None:
            logger.log_import("rejected", category_set.counts(), violation_count=len(violations))
            raise ValidationFailed(violations)

        logger.log_import("committed", category_set.counts(), revision=new_revision, violation_count=len(violations))
        return ImportResult(revision=new_revision, counts=category_set.counts(), violations=violations)

    # Errors

    def describe_error(self, exc: TaxonomyError) -> Dict[str, Any]:
        """Caller-facing payload for a taxonomy error."""
        payload: Dict[str, Any] = {
            "error": exc.code,
            "message": str(exc),
            "hint": ERROR_HINTS.get(exc.code, ""),
            "violations": [],
        }
        if isinstance(exc, ValidationFailed):
            payload["violations"] = [v.to_dict() for v in exc.violations]
            messages = [v.message for v in exc.violations if v.blocking]
            if messages:
                payload["message"] = "; ".join(messages)
        elif isinstance(exc, HasDependents):
            payload["dependents"] = exc.dependents
        elif isinstance(exc, Conflict):
            payload["revision"] = exc.actual
        return payload

    # Staging

    def _stage(self, operation: str, expected_revision: Optional[int]) -> Tuple[CategorySet, int]:
        staged, revision = self.store.snapshot()
        if expected_revision is not None and expected_revision != revision:
            logger.log_conflict(operation, expected_revision, revision)
            raise Conflict(expected_revision, revision)
        return staged, revision

    def _commit(self, operation: str, staged: CategorySet, revision: int, puts=(), deletes=()) -> int:
        violations = blocking(validate(staged))
        if violations:
            logger.log_validation_rejected(operation, violations)
            raise ValidationFailed(violations)
        try:
            return self.store.apply(puts=puts, deletes=deletes, expected_revision=revision)
        except Conflict as e:
            logger.log_conflict(operation, e.expected, e.actual)
            raise


def slugify(label: str) -> str:
    """Option id derived from a label: lowercase, non-alphanumerics as '_'."""
    return re.sub(r"[^0-9a-z]+", "_", label.casefold()).strip("_") or "option"


def _unique_id(category_set: CategorySet, category: str, label: str) -> str:
    base = slugify(label)
    candidate = base
    suffix = 2
    while category_set.has(category, candidate):
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate
