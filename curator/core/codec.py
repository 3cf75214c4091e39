"""
Import/export codec for the full taxonomy.

Documents are JSON:

    {
      "format": "curator-taxonomy",
      "version": 1,
      "revision": 7,
      "categories": {"genres": [{"id": "rock", "label": "Rock"}], ...}
    }

Export is deterministic: fixed category order, insertion order within a
category, option keys ``id, label, parentId`` then extras sorted by name.
Fields this version does not know about are carried through untouched.
Flat documents written by the old admin page (category lists at the top
level, ``name`` and ``parentGenre``/``primaryGenre`` keys) are also read.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .config import get_import_max_bytes
from .errors import Conflict, MalformedDocument
from .schema import CATEGORIES, PARENT_CATEGORY, CategorySet, Option, Violation
from .validator import blocking, duplicate_ids, normalize_label, validate

DOCUMENT_FORMAT = "curator-taxonomy"
DOCUMENT_VERSION = 1

# Unknown category lists are kept in CategorySet.extra under this key;
# "categories" is a known top-level field so it can never be a real extra.
UNKNOWN_CATEGORIES_KEY = "categories"

LEGACY_PARENT_KEYS = ("parentGenre", "primaryGenre")

HEADER_KEYS = ("format", "version", "revision", "categories")

# Header-named fields of a legacy document are kept under this key
LEGACY_HEADER_KEY = "legacyHeader"


class OptionDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: StrictStr
    label: StrictStr
    parent_id: Optional[StrictStr] = Field(default=None, alias="parentId")


class TaxonomyDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    format: Literal["curator-taxonomy"]
    version: int
    revision: Optional[int] = None
    categories: Dict[str, List[Dict[str, Any]]]


def export(category_set: CategorySet, revision: Optional[int] = None) -> str:
    """Serialize the category set; unchanged input gives byte-identical output."""
    categories: Dict[str, Any] = {}
    for category in CATEGORIES:
        categories[category] = [_option_to_dict(o) for o in category_set.options(category)]

    unknown = category_set.extra.get(UNKNOWN_CATEGORIES_KEY) or {}
    for name in sorted(unknown):
        categories[name] = unknown[name]

    document: Dict[str, Any] = {
        "format": DOCUMENT_FORMAT,
        "version": DOCUMENT_VERSION,
        "revision": revision,
        "categories": categories,
    }
    for key in sorted(category_set.extra):
        if key not in HEADER_KEYS:
            document[key] = category_set.extra[key]

    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def decode(text: str) -> Tuple[CategorySet, List[Violation]]:
    """
    Parse a document into a category set.

    Returns:
        The category set plus any DuplicateId violations seen while loading.

    Raises:
        MalformedDocument: bad JSON, wrong shape, unsupported format or version,
        or a known category missing from the document.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedDocument(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedDocument("Document must be a JSON object")

    if "format" not in data and "categories" not in data:
        return _decode_legacy(data)
    return _decode_current(data)


def import_document(store, text: str, expected_revision: Optional[int] = None) -> Tuple[CategorySet, List[Violation], Optional[int]]:
    """
    Validate a document and replace the live store with it, all or nothing.

    The store's exclusive lock is held from the revision check until commit,
    so no single-option edit lands in between.

    Returns:
        (category_set, violations, new_revision); new_revision is None when a
        blocking violation left the store untouched.
    """
    if len(text.encode("utf-8")) > get_import_max_bytes():
        raise MalformedDocument(f"Document exceeds {get_import_max_bytes()} bytes")

    with store.exclusive():
        live_revision = store.revision()
        if expected_revision is not None and expected_revision != live_revision:
            raise Conflict(expected_revision, live_revision)

        category_set, violations = decode(text)
        violations = violations + validate(category_set)
        if blocking(violations):
            return category_set, violations, None

        new_revision = store.replace(category_set, expected_revision=live_revision)
    return category_set, violations, new_revision


def _option_to_dict(option: Option) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": option.id, "label": option.label}
    if option.parent_id is not None:
        data["parentId"] = option.parent_id
    for key in sorted(option.extra):
        data[key] = option.extra[key]
    return data


def _decode_current(data: Dict[str, Any]) -> Tuple[CategorySet, List[Violation]]:
    if data.get("format") != DOCUMENT_FORMAT:
        raise MalformedDocument(f"Unknown document format: {data.get('format')!r}")
    if data.get("version") != DOCUMENT_VERSION:
        raise MalformedDocument(f"Unsupported document version: {data.get('version')!r}")

    try:
        document = TaxonomyDocument.model_validate(data)
    except ValidationError as e:
        raise MalformedDocument(f"Invalid document structure: {e.error_count()} errors") from e

    _require_categories(document.categories)

    options = []
    violations = []
    for category in CATEGORIES:
        parsed = []
        for index, raw in enumerate(document.categories[category]):
            try:
                item = OptionDocument.model_validate(raw)
            except ValidationError as e:
                raise MalformedDocument(f"Invalid option #{index} in {category}: {e.error_count()} errors") from e
            parsed.append(Option(
                id=item.id,
                category=category,
                label=item.label,
                parent_id=item.parent_id,
                extra=dict(item.model_extra or {}),
            ))
        violations.extend(duplicate_ids(category, parsed))
        options.extend(parsed)

    extra = dict(document.model_extra or {})
    unknown = {k: v for k, v in document.categories.items() if k not in CATEGORIES}
    if unknown:
        extra[UNKNOWN_CATEGORIES_KEY] = unknown
    return CategorySet(options, extra=extra), violations


def _decode_legacy(data: Dict[str, Any]) -> Tuple[CategorySet, List[Violation]]:
    for category in CATEGORIES:
        if category in data and not isinstance(data[category], list):
            raise MalformedDocument(f"Invalid data format for {category}")
    _require_categories(data)

    genre_ids = {}
    for raw in data["genres"]:
        if isinstance(raw, dict) and isinstance(raw.get("id"), str):
            genre_ids[raw["id"]] = raw["id"]
            if isinstance(raw.get("name"), str):
                genre_ids.setdefault(normalize_label(raw["name"]), raw["id"])

    options = []
    violations = []
    for category in CATEGORIES:
        parsed = []
        for index, raw in enumerate(data[category]):
            if not isinstance(raw, dict) or not isinstance(raw.get("id"), str) or not isinstance(raw.get("name"), str):
                raise MalformedDocument(f"Invalid option #{index} in {category}: id and name are required")
            extra = {k: v for k, v in raw.items() if k not in ("id", "name") + LEGACY_PARENT_KEYS}
            parent_id = None
            if category in PARENT_CATEGORY:
                parent = next((raw[k] for k in LEGACY_PARENT_KEYS if raw.get(k)), None)
                if parent is not None:
                    parent = str(parent)
                    parent_id = genre_ids.get(parent) or genre_ids.get(normalize_label(parent)) or parent
            parsed.append(Option(id=raw["id"], category=category, label=raw["name"], parent_id=parent_id, extra=extra))
        violations.extend(duplicate_ids(category, parsed))
        options.extend(parsed)

    extra = {k: v for k, v in data.items() if k not in CATEGORIES and k not in HEADER_KEYS}
    header = {k: data[k] for k in HEADER_KEYS if k in data}
    if header:
        extra[LEGACY_HEADER_KEY] = header
    return CategorySet(options, extra=extra), violations


def _require_categories(categories: Dict[str, Any]):
    missing = [c for c in CATEGORIES if c not in categories]
    if missing:
        raise MalformedDocument(f"Missing data for categories: {', '.join(missing)}")
