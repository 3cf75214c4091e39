#!/usr/bin/env python3
"""
Command-line import of a taxonomy document. All or nothing: the database is
only replaced when the document has no blocking violations.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from curator.core import codec
from curator.core.errors import Conflict, MalformedDocument, ValidationFailed
from curator.core.manager import VariablesManager
from curator.core.store import VariableStore
from curator.core.validator import blocking, validate


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Import taxonomy variables from a JSON document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s variables.json                 # Replace all variables in DB_PATH
  %(prog)s variables.json --dry-run       # Validate only
  %(prog)s variables.json --revision 12   # Refuse if the store moved past 12

Importing replaces every category. Documents exported by older versions of
the admin page (flat category lists) are accepted.
        """
    )

    parser.add_argument(
        "document_path",
        help="Path of the document to import"
    )

    parser.add_argument(
        "--db",
        help="Database path (default: DB_PATH environment variable)"
    )

    parser.add_argument(
        "--revision", "-r",
        type=int,
        help="Expected current revision of the store"
    )

    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Validate the document without importing it"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="List informational violations too"
    )

    args = parser.parse_args(argv)

    document_path = Path(args.document_path)
    if not document_path.exists():
        print(f"ERROR: Document not found: {document_path}")
        return 1

    text = document_path.read_text(encoding="utf-8")

    try:
        if args.dry_run:
            category_set, violations = codec.decode(text)
            violations = violations + validate(category_set)
            _print_violations(violations, args.verbose)
            if blocking(violations):
                print("DRY RUN - Document would be rejected")
                return 1
            print("DRY RUN - Document is valid")
            for category, count in category_set.counts().items():
                print(f"  {category}: {count}")
            return 0

        manager = VariablesManager(VariableStore(args.db, seed=False))
        result = manager.import_document(text, expected_revision=args.revision)
        _print_violations(result.violations, args.verbose)
        print(f"Import completed at revision {result.revision}")
        for category, count in result.counts.items():
            print(f"  {category}: {count}")
        return 0

    except ValidationFailed as e:
        print("ERROR: Import rejected, store left unchanged")
        _print_violations(e.violations, args.verbose)
        return 1
    except Conflict as e:
        print(f"ERROR: {e}. Re-export and retry.")
        return 1
    except MalformedDocument as e:
        print(f"ERROR: Invalid document: {e}")
        return 1


def _print_violations(violations, verbose: bool):
    for violation in violations:
        if violation.blocking or verbose:
            print(f"  [{violation.severity}] {violation.code}: {violation.message}")


if __name__ == "__main__":
    sys.exit(main())
