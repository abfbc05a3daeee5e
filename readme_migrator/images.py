"""Find, resolve and rewrite image references."""

import os
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from bs4 import BeautifulSoup


IMAGE_FILE_RE = re.compile(r'\.(png|jpe?g|gif|svg|webp|avif)$', re.IGNORECASE)
DEFAULT_IMAGE_SUBDIRS = ('img', 'assets')

_MARKDOWN_IMAGE_RE = re.compile(r'!\[[^\]]*\]\(([^)\s]+)(?:\s+["\'][^")]+["\'])?\)')
_USE_BASE_URL_RE = re.compile(r'useBaseUrl\(\s*([\'"])(.*?)\1\s*\)')
_PLACEHOLDER_RE = re.compile(r'<!--IMAGE_PLACEHOLDER:([^>]+)-->')


@dataclass
class ImageIndex:
    """Local image files under ``root``, keyed for lookup."""
    root: str
    files: list = field(default_factory=list)
    by_relative: dict = field(default_factory=dict)  # 'img/a/b.png' -> abs path
    by_basename: dict = field(default_factory=dict)  # 'b.png' -> [abs paths]


def _walk_images(directory: str) -> list:
    found = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        for name in sorted(filenames):
            if IMAGE_FILE_RE.search(name):
                found.append(os.path.join(dirpath, name))
    return found


def build_image_index(root: str, subdirs=DEFAULT_IMAGE_SUBDIRS) -> ImageIndex:
    """Index images under ``root/<subdir>`` (or all of ``root`` if none exist)."""
    root = os.path.abspath(root)
    files = []
    searched = False
    for sub in subdirs:
        path = os.path.join(root, sub)
        if os.path.isdir(path):
            searched = True
            files.extend(_walk_images(path))
    if not searched:
        files = _walk_images(root)

    index = ImageIndex(root=root, files=files)
    for path in files:
        relative = os.path.relpath(path, root).replace('\\', '/').lstrip('/')
        index.by_relative[relative] = path
        index.by_basename.setdefault(os.path.basename(path), []).append(path)
    return index


def normalize_reference(ref: str) -> str:
    return str(ref).replace('\\', '/').lstrip('/')


def longest_common_suffix(a: str, b: str) -> int:
    """Number of trailing characters ``a`` and ``b`` share."""
    n = 0
    while n < len(a) and n < len(b) and a[-1 - n] == b[-1 - n]:
        n += 1
    return n


def _exact(relative: str, index: ImageIndex, scorer) -> Optional[str]:
    return index.by_relative.get(relative)


def _suffix_chain(relative: str, index: ImageIndex, scorer) -> Optional[str]:
    parts = relative.split('/')
    for i in range(1, len(parts) - 1):
        match = index.by_relative.get('/'.join(parts[i:]))
        if match:
            return match
    return None


def _by_basename(relative: str, index: ImageIndex, scorer) -> Optional[str]:
    candidates = index.by_basename.get(relative.split('/')[-1], [])
    if not candidates:
        return None
    # max() keeps the first of equally scored candidates
    return max(candidates, key=lambda path: scorer(path.replace('\\', '/'), relative))


RESOLVERS = (_exact, _suffix_chain, _by_basename)


def resolve_local_image(
    ref: str,
    index: ImageIndex,
    scorer: Callable[[str, str], int] = longest_common_suffix,
) -> Optional[str]:
    """Find the local file for an image reference, or None.

    Strategies, each tried only if the previous found nothing: exact relative
    path, progressively shorter path suffixes, then bare filename with
    ``scorer`` picking among several candidates.
    """
    if not ref:
        return None
    relative = normalize_reference(ref)
    for resolver in RESOLVERS:
        found = resolver(relative, index, scorer)
        if found:
            return found
    return None


def collect_image_references(text: str) -> list:
    """Image paths referenced anywhere in ``text``, first occurrence order."""
    found = {}

    def add(value):
        value = (value or '').strip()
        if value:
            found.setdefault(value, None)

    for match in _MARKDOWN_IMAGE_RE.finditer(text):
        add(match.group(1))
    for img in BeautifulSoup(text, 'html.parser').find_all('img', src=True):
        add(img['src'])
    for match in _USE_BASE_URL_RE.finditer(text):
        add(match.group(2))
    for match in _PLACEHOLDER_RE.finditer(text):
        add(match.group(1))
    return list(found)


def rewrite_image_references(text: str, mapping: dict) -> str:
    """Point every occurrence of each original path at its hosted URL.

    All forms are tried for every pair: placeholder markers (HTML comment
    or expression comment), ``**MISSING IMAGE!** path``, Markdown images,
    ``<img src>`` and ``useBaseUrl('path')``.
    """
    for original, url in mapping.items():
        if not original or not url:
            continue
        path = re.escape(original)
        tag = f'<img src="{url}" alt="" />'

        text = re.sub(rf'<!--IMAGE_PLACEHOLDER:{path}-->', lambda m: tag, text)
        text = re.sub(rf'\{{/\*IMAGE_PLACEHOLDER:{path}\*/\}}', lambda m: tag, text)
        text = re.sub(rf'\*\*MISSING IMAGE!\*\*\s+{path}', lambda m: tag, text)
        text = re.sub(
            rf'(!\[[^\]]*\]\()\s*{path}((?:\s+["\'][^"\']*["\'])?\s*\))',
            lambda m: f'{m.group(1)}{url}{m.group(2)}',
            text,
        )
        text = re.sub(
            rf'(<img\b[^>]*\bsrc=)(["\']){path}\2',
            lambda m: f'{m.group(1)}"{url}"',
            text,
        )
        text = re.sub(
            rf'useBaseUrl\(\s*([\'"]){path}\1\s*\)',
            lambda m: f'"{url}"',
            text,
        )
    return text
