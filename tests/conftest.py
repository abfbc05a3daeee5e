"""Pytest configuration and fixtures."""

import csv

import pytest

from readme_migrator.config import MigrationOptions
from readme_migrator.uploader import UploadError


class FakeUploader:
    """Stands in for ImageUploader; returns a CDN URL per file name."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.uploaded = []

    def upload(self, local_path):
        name = local_path.replace('\\', '/').rsplit('/', 1)[-1]
        if name in self.fail_for:
            raise UploadError(f'Upload failed (500 Internal Server Error): {name}')
        self.uploaded.append(local_path)
        return f'https://files.readme.io/{name}'


@pytest.fixture
def src_dir(tmp_path):
    """Create an empty Docusaurus docs directory."""
    path = tmp_path / "docs"
    path.mkdir()
    return path


@pytest.fixture
def out_dir(tmp_path):
    """Path for the converted output (not created)."""
    return tmp_path / "out"


@pytest.fixture
def write_doc(src_dir):
    """Write a source document relative to the docs directory."""
    def _write(rel, content):
        path = src_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        return path
    return _write


@pytest.fixture
def make_options(src_dir, out_dir):
    """Build MigrationOptions pointing at the temporary directories."""
    def _make(**overrides):
        values = {'src_root': str(src_dir), 'dest_root': str(out_dir)}
        values.update(overrides)
        return MigrationOptions(**values)
    return _make


@pytest.fixture
def fake_uploader():
    return FakeUploader()


def read_log(path):
    """Rows of an audit log as dicts."""
    with open(path, newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))
