"""Run options and the file names the migrator reads and writes."""

import os
from dataclasses import dataclass
from typing import Optional

from .uploader import DEFAULT_TIMEOUT


LOG_FILENAME = '_log.csv'
IMAGES_FILENAME = '_images.csv'
REPORT_FILENAME = 'migration-report.json'
ORDER_FILENAME = '_order.yaml'
INDEX_FILENAME = 'index.md'
MERGED_LOG_FILENAME = '_log.all.csv'
OUTPUT_EXTENSION = '.md'

# Files the migrator owns; never listed in an order manifest.
TOOL_FILES = frozenset([LOG_FILENAME, IMAGES_FILENAME, REPORT_FILENAME, ORDER_FILENAME])

API_KEY_ENV = 'README_API_KEY'


@dataclass
class MigrationOptions:
    src_root: str
    dest_root: str
    copy_root: Optional[str] = None
    include_mdx: bool = False
    upload_images: bool = False
    images_root: Optional[str] = None
    api_key: str = ''
    move_map_path: Optional[str] = None
    flat: bool = False
    upload_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_args(cls, args) -> 'MigrationOptions':
        """Build options from parsed ``convert`` arguments.

        Relative paths resolve against ``--cwd``; the API key falls back to
        the ``README_API_KEY`` environment variable.
        """
        cwd = os.path.abspath(args.cwd or os.getcwd())

        def resolve(path):
            return os.path.abspath(os.path.join(cwd, path)) if path else None

        return cls(
            src_root=resolve(args.src),
            dest_root=resolve(args.out),
            copy_root=resolve(args.copy),
            include_mdx=args.include_mdx,
            upload_images=args.upload_images,
            images_root=resolve(args.images_src),
            api_key=args.readme_api_key or os.environ.get(API_KEY_ENV, ''),
            move_map_path=resolve(args.move_map),
            flat=args.flat,
            upload_timeout=args.upload_timeout,
        )
