"""Per-document conversion and the run that drives it.

A document goes through: admonitions -> frontmatter split -> parse -> tree
stages -> serialize -> tabs -> images -> import strip -> frontmatter wrap ->
write. Any exception fails that document only; the run carries on.
"""

import logging
import os
import re
from dataclasses import dataclass, field

from .audit import SNIPPET_SEPARATOR, AuditLog, ImagesManifest, LogType, MigrationReport
from .callouts import convert_admonitions
from .config import IMAGES_FILENAME, LOG_FILENAME, OUTPUT_EXTENSION, REPORT_FILENAME, MigrationOptions
from .frontmatter import build_frontmatter, derive_title, render_frontmatter, split_frontmatter
from .html_to_md import keep_html, lower_html
from .images import build_image_index, collect_image_references, resolve_local_image, rewrite_image_references
from .move_map import read_move_map
from .nodes import Root
from .parser import parse
from .rewriter import (
    collect_components,
    collect_markdown_images,
    normalize_comments,
    replace_image_zoom,
    strip_scripts_and_handlers,
)
from .serializer import serialize
from .tabs import convert_tabs
from .uploader import ImageUploader, UploadError
from .utils import ensure_dir, find_markdown_files

logger = logging.getLogger(__name__)

IMPORTS_RE = re.compile(r'^(?:\s*import\s.+\n)+')


@dataclass
class DocumentRecord:
    """What one document's conversion found and removed."""
    images: list = field(default_factory=list)
    removed_components: list = field(default_factory=list)
    removed_scripts: list = field(default_factory=list)
    stripped_html: list = field(default_factory=list)
    removed_imports: str = ''
    warnings: list = field(default_factory=list)

    def unique_images(self) -> list:
        return list(dict.fromkeys(image for image in self.images if image))


def transform_tree(tree: Root, record: DocumentRecord) -> Root:
    """Run the tree stages in order."""
    tree = replace_image_zoom(tree, record.images)
    collect_markdown_images(tree, record.images)
    collect_components(tree, record.removed_components)
    tree = normalize_comments(tree)
    tree = strip_scripts_and_handlers(tree, record.removed_scripts, record.warnings)
    tree = lower_html(tree, keep_if=keep_html, record=record.stripped_html.append)
    return tree


def convert_body(body: str, record: DocumentRecord) -> str:
    """Convert a document body (frontmatter removed) up to the tabs pass."""
    record.images.extend(collect_image_references(body))
    tree = transform_tree(parse(body), record)
    return convert_tabs(serialize(tree))


def strip_imports(text: str) -> tuple[str, str]:
    """Remove leading ``import`` lines; returns (text, removed lines)."""
    match = IMPORTS_RE.match(text)
    if not match:
        return text, ''
    return text[match.end():], match.group(0).strip()


def output_relative_path(rel: str, flat: bool = False) -> str:
    out = os.path.splitext(rel)[0] + OUTPUT_EXTENSION
    return os.path.basename(out) if flat else out


class MigrationRun:
    """State for one migration: options, logs, report, image index, uploader and move map."""

    def __init__(self, options: MigrationOptions, uploader: ImageUploader = None):
        self.options = options
        os.makedirs(options.dest_root, exist_ok=True)
        self.audit = AuditLog(os.path.join(options.dest_root, LOG_FILENAME))
        self.report = MigrationReport(
            os.path.join(options.dest_root, REPORT_FILENAME),
            srcRoot=options.src_root,
            destRoot=options.dest_root,
            copyRoot=options.copy_root,
            flags={
                'includeMdx': options.include_mdx,
                'uploadImages': options.upload_images,
                'imagesRoot': options.images_root,
                'moveMap': options.move_map_path,
                'flat': options.flat,
            },
        )
        self.failed = []
        self.converted = []
        self._written = set()

        self.images_manifest = None
        self.image_index = None
        self.uploader = None
        if options.upload_images:
            self.images_manifest = ImagesManifest(os.path.join(options.dest_root, IMAGES_FILENAME))
            if not options.images_root:
                print("  ⚠ --upload-images is on, but --images-src was not provided.")
            elif not (options.api_key or uploader):
                print("  ⚠ --upload-images is on, but no README API key was provided.")
            else:
                self.image_index = build_image_index(options.images_root)
                self.uploader = uploader or ImageUploader(options.api_key, timeout=options.upload_timeout)
                print(f"  ✓ Indexed {len(self.image_index.files)} images from {options.images_root}")

        self.move_map = read_move_map(options.move_map_path, options.dest_root) if options.move_map_path else None

    @property
    def resolving_images(self) -> bool:
        return self.image_index is not None and self.uploader is not None

    def run(self) -> int:
        """Convert every document; returns the number that failed."""
        files = find_markdown_files(self.options.src_root, include_mdx=self.options.include_mdx)
        if not files:
            print("  ⚠ No .md files found (use --include-mdx to include .mdx).")
            return 0

        for i, path in enumerate(files):
            rel = os.path.relpath(path, self.options.src_root)
            print(f"  [{i+1}/{len(files)}] {rel}...", end='', flush=True)
            try:
                self.process(path, rel)
            except Exception as e:
                logger.debug('Failed to convert %s', rel, exc_info=True)
                print(f" ✗ ({e})")
                self.failed.append(rel)
                self.audit.append(LogType.FAILED, rel, str(e))
                self.report.add_file({'source': rel, 'error': str(e)})
                continue
            print(" ✓")
        return len(self.failed)

    def process(self, path: str, rel: str) -> dict:
        """Convert one document and write it out; returns its report entry."""
        with open(path, 'r', encoding='utf-8') as f:
            raw = f.read()

        frontmatter, body = split_frontmatter(convert_admonitions(raw))
        title = derive_title(frontmatter, body)
        record = DocumentRecord()
        body = convert_body(body, record)

        images = record.unique_images()
        if self.resolving_images and images:
            body = rewrite_image_references(body, self.upload_images(images, rel))
        elif images and not self.options.upload_images:
            self.audit.append(LogType.FOUND_IMAGES, rel, images=images)

        body, record.removed_imports = strip_imports(body)
        self.log_document(rel, record)

        content = f"{render_frontmatter(build_frontmatter(title))}\n{body.strip()}".strip() + '\n'
        out_rel = output_relative_path(rel, self.options.flat)
        default_dest = os.path.join(self.options.dest_root, out_rel)
        dest = self.place(rel, default_dest)
        copy = None
        if self.options.copy_root:
            copy = os.path.join(self.options.copy_root, os.path.relpath(dest, self.options.dest_root))

        if dest in self._written:
            record.warnings.append({'type': 'overwrite', 'message': f'Overwrote {out_rel} from an earlier document'})
        self._write(dest, content)
        if copy:
            self._write(copy, content)

        moved = dest != default_dest
        if moved:
            self.audit.append(LogType.MOVED, rel, f'Moved to {os.path.relpath(dest, self.options.dest_root)}')

        entry = {
            'source': rel,
            'output': os.path.relpath(dest, self.options.dest_root),
            'copiedTo': os.path.relpath(copy, self.options.copy_root) if copy else None,
            'title': title,
            'warnings': record.warnings,
            'images': images,
            'moved': moved,
        }
        self.report.add_file(entry)
        self.converted.append(rel)
        return entry

    def _write(self, path: str, content: str):
        ensure_dir(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        self._written.add(path)

    def upload_images(self, images: list, rel: str) -> dict:
        """Resolve and upload each image; returns original path -> hosted URL."""
        mapping = {}
        for original in images:
            local = resolve_local_image(original, self.image_index)
            if not local:
                self.audit.append(LogType.LOCAL_IMAGE_NOT_FOUND, rel, images=[original])
                continue
            try:
                url = self.uploader.upload(local)
            except (UploadError, OSError) as e:
                self.audit.append(LogType.REMOTE_IMAGE_UPLOAD_FAILED, rel, str(e), images=[original])
                continue
            mapping[original] = url
            self.images_manifest.append(rel, original, local, url)
        return mapping

    def log_document(self, rel: str, record: DocumentRecord):
        if record.removed_imports:
            self.audit.append(LogType.REMOVED_IMPORTS, rel, removed=[record.removed_imports])
        if record.stripped_html:
            self.audit.append(LogType.STRIPPED_HTML, rel, SNIPPET_SEPARATOR.join(record.stripped_html))
        if record.removed_scripts:
            self.audit.append(LogType.REMOVED_SCRIPT, rel, removed=record.removed_scripts)
        if record.removed_components:
            self.audit.append(LogType.REMOVED_MDX, rel, removed=record.removed_components)

    def place(self, rel: str, default_dest: str) -> str:
        """Apply the move map to a default output path."""
        filename = os.path.basename(default_dest)
        if self.move_map is None or filename not in self.move_map:
            return default_dest
        if self.move_map.is_duplicate(filename):
            self.audit.append(
                LogType.MOVE_DUPLICATE, rel, f'Multiple destinations found for {filename}; not moved.'
            )
            return default_dest

        directory = self.move_map.destination(filename)
        if not os.path.exists(directory):
            self.audit.append(
                LogType.MOVE_DESTINATION_MISSING, rel, f'Destination directory does not exist: {directory}; not moved.'
            )
            return default_dest
        if not os.path.isdir(directory):
            self.audit.append(
                LogType.MOVE_DESTINATION_NOT_DIRECTORY, rel, f'Destination is not a directory: {directory}; not moved.'
            )
            return default_dest
        return os.path.join(directory, filename)

    def finish(self):
        self.report.write(converted=len(self.converted), failed=len(self.failed))
