#!/usr/bin/env python3
"""
Docusaurus to ReadMe Migration Tool

Converts a tree of Docusaurus Markdown/MDX docs into ReadMe-ready Markdown.
Rewrites frontmatter, turns admonitions into callouts and Tabs/TabItem into
Tabs/Tab, strips scripts and event handlers, lowers simple HTML to Markdown,
and can re-host images on ReadMe.

Commands:
  convert:    python migrate.py convert --src docs --out ./readme-docs
  merge-logs: python migrate.py merge-logs ./readme-docs
  callouts:   python migrate.py callouts --cwd docs --dry-run
"""

import argparse
import logging
import os
import sys

from readme_migrator.audit import AuditLog, LogType
from readme_migrator.callouts import convert_callout_files
from readme_migrator.config import LOG_FILENAME, MigrationOptions
from readme_migrator.finalizer import finalize_directories
from readme_migrator.merge_logs import merge_logs
from readme_migrator.pipeline import MigrationRun
from readme_migrator.uploader import DEFAULT_TIMEOUT


def run_conversion(options: MigrationOptions) -> int:
    """Run the whole migration; returns the number of failed documents."""
    print()
    print("=" * 60)
    print("  Docusaurus → ReadMe Migration Tool")
    print("=" * 60)
    print()

    print("[1/4] Preparing destination...")
    if not os.path.isdir(options.src_root):
        raise FileNotFoundError(f"Source directory not found: {options.src_root}")
    run = MigrationRun(options)
    print(f"  ✓ Writing to {options.dest_root}")
    if options.copy_root:
        print(f"  ✓ Mirroring to {options.copy_root}")

    print()
    print("[2/4] Converting documents...")
    failed = run.run()
    print(f"\n  ✓ Converted {len(run.converted)} documents")
    if failed:
        print(f"  ⚠ Failed: {failed} documents (see {os.path.join(options.dest_root, LOG_FILENAME)})")

    print()
    print("[3/4] Finalizing directories...")
    created, updated = finalize_directories(options.dest_root, options.copy_root)
    print(f"  ✓ Created {len(created)} index.md files")
    print(f"  ✓ Updated {len(updated)} _order.yaml files")

    print()
    print("[4/4] Writing report...")
    run.finish()
    print(f"  ✓ Generated {run.report.path}")

    print()
    print("=" * 60)
    print("  Migration Complete!")
    print("=" * 60)
    print()
    print(f"  Output directory:   {options.dest_root}")
    print(f"  Documents converted: {len(run.converted)}")
    print(f"  Documents failed:    {failed}")
    print()
    print("  Next steps:")
    print(f"  1. Review {LOG_FILENAME} for removed code, stripped HTML and missing images")
    print("  2. Check callouts and tabs render correctly in ReadMe")
    print("  3. Verify _order.yaml matches the intended sidebar order")
    print()
    return failed


def run_callouts(root: str, dry_run: bool = False, backup: bool = False) -> int:
    """Convert admonitions in place under ``root``; returns the blocks replaced."""
    changed = convert_callout_files(root, dry_run=dry_run, backup=backup)
    for path, count in changed:
        prefix = '[DRY] ' if dry_run else ''
        print(f"  {prefix}{os.path.relpath(path, root)}: {count} replacement(s)")

    total = sum(count for _, count in changed)
    if not changed:
        print("  ⚠ No admonition blocks found.")
    else:
        suffix = ' (dry run)' if dry_run else ''
        print(f"\n  ✓ Done. Files changed: {len(changed)}, blocks replaced: {total}{suffix}")
    return total


def _log_fatal(dest_root: str, message: str):
    """Try to record a FATAL row in the destination log."""
    try:
        os.makedirs(dest_root, exist_ok=True)
        AuditLog(os.path.join(dest_root, LOG_FILENAME), fresh=False).append(LogType.FATAL, '', message)
    except OSError as e:
        print(f"  ⚠ Could not write to {LOG_FILENAME}: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Migrate Docusaurus docs to ReadMe',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python migrate.py convert --src docs --out ./readme-docs
  python migrate.py convert --src docs --out ./readme-docs --upload-images --images-src static
  python migrate.py merge-logs ./readme-docs
  python migrate.py callouts --cwd docs --backup
        """,
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Show debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    convert = subparsers.add_parser('convert', help='Convert a docs tree')
    convert.add_argument('--src', required=True, help='Source docs directory (relative to --cwd)')
    convert.add_argument('--out', required=True, help='Destination directory')
    convert.add_argument('--cwd', default=None, help='Working root for relative paths (default: current directory)')
    convert.add_argument('--copy', default=None, help='Also write every converted file under this directory')
    convert.add_argument('--include-mdx', action='store_true', help='Convert .mdx files as well as .md')
    convert.add_argument('--upload-images', action='store_true', help='Upload referenced images to ReadMe')
    convert.add_argument('--images-src', default=None, help='Directory to search for local images (e.g. static/)')
    convert.add_argument('--readme-api-key', default=None, help='ReadMe API key (default: $README_API_KEY)')
    convert.add_argument('--move-map', default=None, help='CSV of filename → destination directory overrides')
    convert.add_argument('--flat', action='store_true', help='Write unmapped files directly under --out')
    convert.add_argument(
        '--upload-timeout', type=float, default=DEFAULT_TIMEOUT,
        help=f'Seconds to wait for each upload attempt (default: {DEFAULT_TIMEOUT})',
    )

    merge = subparsers.add_parser('merge-logs', help=f'Merge every {LOG_FILENAME} under a directory')
    merge.add_argument('root', help='Directory to search')
    merge.add_argument('--output', '-o', default=None, help='Merged CSV path (default: <root>/_log.all.csv)')

    callouts = subparsers.add_parser('callouts', help='Convert admonitions to callouts in place')
    callouts.add_argument('--cwd', required=True, help='Docs directory to rewrite')
    callouts.add_argument('--dry-run', action='store_true', help='Report what would change without writing')
    callouts.add_argument('--backup', action='store_true', help='Keep each original as <file>.bak')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.command == 'merge-logs':
        try:
            output, merged = merge_logs(args.root, args.output)
        except FileNotFoundError as e:
            print(f"  ✗ {e}")
            return 2
        print(f"  ✓ Merged {merged} file(s) into: {output}")
        return 0

    if args.command == 'callouts':
        root = os.path.abspath(args.cwd)
        if not os.path.isdir(root):
            print(f"  ✗ Directory not found: {root}")
            return 2
        run_callouts(root, dry_run=args.dry_run, backup=args.backup)
        return 0

    options = MigrationOptions.from_args(args)
    try:
        run_conversion(options)
    except Exception as e:
        logging.getLogger(__name__).debug('Migration aborted', exc_info=True)
        _log_fatal(options.dest_root, str(e))
        print(f"  ✗ Migration failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
