"""Tests for the command-line entry point."""

from conftest import read_log
from migrate import build_parser, main
from readme_migrator.config import MigrationOptions


class TestConvertCommand:
    def test_full_run(self, write_doc, src_dir, out_dir, capsys):
        write_doc("intro.md", "# Intro\n")
        write_doc("guides/setup.md", "# Setup\n")

        code = main(['convert', '--src', str(src_dir), '--out', str(out_dir)])

        assert code == 0
        assert (out_dir / "intro.md").exists()
        assert (out_dir / "guides" / "setup.md").exists()
        assert (out_dir / "index.md").exists()
        assert (out_dir / "guides" / "index.md").exists()
        assert (out_dir / "migration-report.json").exists()
        assert 'Migration Complete!' in capsys.readouterr().out

    def test_document_failures_do_not_fail_run(self, write_doc, src_dir, out_dir):
        write_doc("bad.md", "<Foo>\n")

        assert main(['convert', '--src', str(src_dir), '--out', str(out_dir)]) == 0
        assert [row['Type'] for row in read_log(out_dir / "_log.csv")] == ['FAILED']

    def test_missing_source_is_fatal(self, tmp_path, capsys):
        out_dir = tmp_path / "out"

        code = main(['convert', '--src', str(tmp_path / "nope"), '--out', str(out_dir)])

        assert code == 1
        rows = read_log(out_dir / "_log.csv")
        assert rows[0]['Type'] == 'FATAL'
        assert 'Source directory not found' in rows[0]['Error Message']
        assert 'Migration failed' in capsys.readouterr().out

    def test_relative_paths_use_cwd(self, tmp_path, write_doc):
        write_doc("intro.md", "# Intro\n")

        code = main(['convert', '--cwd', str(tmp_path), '--src', 'docs', '--out', 'site'])

        assert code == 0
        assert (tmp_path / "site" / "intro.md").exists()


class TestOptions:
    def test_api_key_flag_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv('README_API_KEY', 'from-env')
        args = build_parser().parse_args([
            'convert', '--cwd', str(tmp_path), '--src', 'docs', '--out', 'out', '--readme-api-key', 'from-flag',
        ])

        assert MigrationOptions.from_args(args).api_key == 'from-flag'

    def test_api_key_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv('README_API_KEY', 'from-env')
        args = build_parser().parse_args(['convert', '--cwd', str(tmp_path), '--src', 'docs', '--out', 'out'])
        options = MigrationOptions.from_args(args)

        assert options.api_key == 'from-env'
        assert options.src_root == str(tmp_path / "docs")
        assert options.copy_root is None
        assert options.upload_timeout == 30


class TestMergeLogsCommand:
    def test_merge(self, write_doc, src_dir, out_dir, capsys):
        write_doc("intro.md", "# Intro\n")
        main(['convert', '--src', str(src_dir), '--out', str(out_dir)])

        assert main(['merge-logs', str(out_dir)]) == 0
        assert (out_dir / "_log.all.csv").exists()

    def test_nothing_found(self, tmp_path, capsys):
        assert main(['merge-logs', str(tmp_path)]) == 2
        assert 'No _log.csv files found' in capsys.readouterr().out


class TestCalloutsCommand:
    NOTE = ":::note\nRemember this.\n:::\n"

    def test_dry_run_writes_nothing(self, write_doc, src_dir, capsys):
        path = write_doc("guide.md", self.NOTE)

        assert main(['callouts', '--cwd', str(src_dir), '--dry-run']) == 0

        out = capsys.readouterr().out
        assert path.read_text(encoding='utf-8') == self.NOTE
        assert not path.with_name("guide.md.bak").exists()
        assert '[DRY] guide.md: 1 replacement(s)' in out
        assert 'blocks replaced: 1 (dry run)' in out

    def test_backup_keeps_original(self, write_doc, src_dir):
        path = write_doc("guide.md", self.NOTE + "\n:::tip\nShortcut.\n:::\n")

        assert main(['callouts', '--cwd', str(src_dir), '--backup']) == 0

        converted = path.read_text(encoding='utf-8')
        assert ':::' not in converted
        assert converted.startswith('<Callout icon="📘" theme="info">\n  **NOTE**\n')
        assert path.with_name("guide.md.bak").read_text(encoding='utf-8') == self.NOTE + "\n:::tip\nShortcut.\n:::\n"

    def test_converted_tree_has_nothing_left(self, write_doc, src_dir, capsys):
        write_doc("guide.md", self.NOTE)
        main(['callouts', '--cwd', str(src_dir)])
        capsys.readouterr()

        assert main(['callouts', '--cwd', str(src_dir)]) == 0
        assert 'No admonition blocks found' in capsys.readouterr().out
        assert not (src_dir / "guide.md.bak").exists()

    def test_missing_directory(self, tmp_path, capsys):
        assert main(['callouts', '--cwd', str(tmp_path / "nope")]) == 2
        assert 'Directory not found' in capsys.readouterr().out
