#!/usr/bin/env python3
"""
Command-line utility for persisted drafts in the durable (SQLite) medium.
"""

import argparse
import json
import sys
from pathlib import Path

# Add repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from formdraft.core.config import get_db_path
from formdraft.core.envelope import decode_draft
from formdraft.core.maintenance import check_drafts, list_drafts, purge_malformed
from formdraft.core.medium import SqliteMedium
from formdraft.core.schema import StorageUnavailableError


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Inspect and clean persisted form drafts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list                     # List draft keys and field names
  %(prog)s show profile-form        # Print one draft as JSON
  %(prog)s clear profile-form       # Delete one draft
  %(prog)s check                    # Report unreadable payloads
  %(prog)s purge --dry-run          # Show what purge would remove

Environment variables:
- DRAFT_DB_PATH=./data/drafts.db (default)
- DRAFT_SCHEMA_VERSION=0 (default)
        """
    )
    parser.add_argument("--db", default=None, help="SQLite path (default: DRAFT_DB_PATH)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List drafts")
    show = sub.add_parser("show", help="Print one draft")
    show.add_argument("key")
    clear = sub.add_parser("clear", help="Delete one draft")
    clear.add_argument("key")
    sub.add_parser("check", help="Report unreadable payloads")
    purge = sub.add_parser("purge", help="Remove unreadable payloads")
    purge.add_argument("--dry-run", action="store_true", help="Report without removing")

    args = parser.parse_args(argv)
    medium = SqliteMedium(args.db or get_db_path())

    try:
        if args.command == "list":
            drafts = list_drafts(medium)
            if not drafts:
                print("No drafts stored")
            for key, fields in drafts.items():
                print(f"{key}: {', '.join(sorted(fields)) or '(unreadable)'}")

        elif args.command == "show":
            draft = decode_draft(args.key, medium.read(args.key))
            print(json.dumps(draft, indent=2, sort_keys=True))

        elif args.command == "clear":
            medium.remove(args.key)
            print(f"Cleared {args.key}")

        elif args.command in ("check", "purge"):
            if args.command == "check":
                report = check_drafts(medium)
            else:
                report = purge_malformed(medium, dry_run=args.dry_run)
            print(f"Keys checked: {report.keys_checked}")
            print(f"Issues found: {report.issues_found}")
            for line in report.errors + report.actions_taken:
                print(f"  - {line}")
            return 1 if report.issues_found and args.command == "check" else 0

    except StorageUnavailableError as e:
        print(f"Storage unavailable: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
