"""Audit log, images manifest and run report written to the destination root."""

import csv
import json
import os
from datetime import datetime, timezone
from enum import Enum


LOG_HEADER = ['Type', 'File', 'Error Message', 'Removed Code', 'Missing Images']
IMAGES_HEADER = ['File', 'Original Path', 'Local Path', 'Uploaded URL']
SNIPPET_SEPARATOR = '\n---\n'


class LogType(str, Enum):
    REMOVED_IMPORTS = 'REMOVED_IMPORTS'
    STRIPPED_HTML = 'STRIPPED_HTML'
    REMOVED_SCRIPT = 'REMOVED_SCRIPT'
    REMOVED_MDX = 'REMOVED_MDX'
    FOUND_IMAGES = 'FOUND_IMAGES'
    MOVE_DUPLICATE = 'MOVE_DUPLICATE'
    MOVE_DESTINATION_MISSING = 'MOVE_DESTINATION_MISSING'
    MOVE_DESTINATION_NOT_DIRECTORY = 'MOVE_DESTINATION_NOT_DIRECTORY'
    MOVED = 'MOVED'
    LOCAL_IMAGE_NOT_FOUND = 'LOCAL_IMAGE_NOT_FOUND'
    REMOTE_IMAGE_UPLOAD_FAILED = 'REMOTE_IMAGE_UPLOAD_FAILED'
    FAILED = 'FAILED'
    FATAL = 'FATAL'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class _CsvFile:
    """A CSV file started with its header, then appended to row by row.

    With ``fresh=False`` an existing file is appended to as is.
    """

    header: list = []

    def __init__(self, path: str, fresh: bool = True):
        self.path = path
        if fresh or not os.path.isfile(path):
            with open(path, 'w', newline='', encoding='utf-8') as f:
                csv.writer(f, lineterminator='\n').writerow(self.header)

    def _append(self, row: list):
        with open(self.path, 'a', newline='', encoding='utf-8') as f:
            csv.writer(f, lineterminator='\n').writerow(row)


class AuditLog(_CsvFile):
    header = LOG_HEADER

    def __init__(self, path: str, fresh: bool = True):
        super().__init__(path, fresh)
        self.counts = {}

    def append(self, log_type: LogType, file: str, error: str = '', removed=(), images=()):
        """Write one row. ``removed`` snippets and ``images`` are joined into single cells."""
        log_type = LogType(log_type)
        self._append([
            log_type.value,
            file,
            error,
            SNIPPET_SEPARATOR.join(s for s in removed if s),
            '\n'.join(images),
        ])
        self.counts[log_type] = self.counts.get(log_type, 0) + 1


class ImagesManifest(_CsvFile):
    header = IMAGES_HEADER

    def append(self, file: str, original: str, local: str, url: str):
        self._append([file, original, local, url])


class MigrationReport:
    """Run metadata plus one entry per processed document."""

    def __init__(self, path: str, **metadata):
        self.path = path
        self.data = {'startedAt': _now(), **metadata, 'files': []}

    @property
    def files(self) -> list:
        return self.data['files']

    def add_file(self, entry: dict):
        self.files.append(entry)

    def write(self, **summary):
        self.data.update(summary)
        self.data['completedAt'] = _now()
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self.data, f, indent=2, ensure_ascii=False)
