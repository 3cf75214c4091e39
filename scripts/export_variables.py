#!/usr/bin/env python3
"""
Command-line export of every taxonomy category to a JSON document.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from curator.core.errors import TaxonomyError
from curator.core.manager import VariablesManager
from curator.core.store import VariableStore


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Export taxonomy variables to a JSON document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s variables.json                 # Export from DB_PATH
  %(prog)s variables.json --db other.db   # Export from a specific database
  %(prog)s -                              # Write the document to stdout
        """
    )

    parser.add_argument(
        "output_path",
        help="Path for the exported document, or '-' for stdout"
    )

    parser.add_argument(
        "--db",
        help="Database path (default: DB_PATH environment variable)"
    )

    args = parser.parse_args(argv)

    try:
        manager = VariablesManager(VariableStore(args.db, seed=False))
        document, revision = manager.export_document()
    except TaxonomyError as e:
        print(f"ERROR: Export failed: {e}", file=sys.stderr)
        return 1

    if args.output_path == "-":
        sys.stdout.write(document)
        return 0

    Path(args.output_path).write_text(document, encoding="utf-8")
    print(f"Exported revision {revision} to {args.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
