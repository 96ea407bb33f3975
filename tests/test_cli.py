import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner
from watchfiles import Change

from macroview import __version__
from macroview.cli.main import cli


class TestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(cli, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_compile_prints_module(self):
        with self.runner.isolated_filesystem():
            Path("page.html").write_text('<p m:text="view.x"></p>', encoding="utf-8")
            result = self.runner.invoke(cli, ["compile", "page.html"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("def render(view):", result.output)

    def test_compile_to_file(self):
        with self.runner.isolated_filesystem():
            Path("page.html").write_text("<p>x</p>", encoding="utf-8")
            result = self.runner.invoke(cli, ["compile", "page.html", "-o", "out/page.py"])
            self.assertEqual(result.exit_code, 0, result.output)
            source = Path("out/page.py").read_text(encoding="utf-8")
        self.assertIn("write('<p>x</p>')", source)

    def test_compile_with_prefix(self):
        with self.runner.isolated_filesystem():
            Path("page.html").write_text("<p tpl:ignore>x</p><b>y</b>", encoding="utf-8")
            result = self.runner.invoke(
                cli, ["compile", "page.html", "--prefix", "tpl:", "-o", "page.py"]
            )
            self.assertEqual(result.exit_code, 0, result.output)
            source = Path("page.py").read_text(encoding="utf-8")
        self.assertIn("write('<b>y</b>')", source)
        self.assertNotIn("<p>", source)

    def test_compile_invalid_template(self):
        with self.runner.isolated_filesystem():
            Path("page.html").write_text("<p m:else>x</p>", encoding="utf-8")
            result = self.runner.invoke(cli, ["compile", "page.html"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Invalid template", result.output)

    def test_compile_missing_file(self):
        result = self.runner.invoke(cli, ["compile", "does-not-exist.html"])
        self.assertEqual(result.exit_code, 2)

    def test_build(self):
        with self.runner.isolated_filesystem():
            Path("templates/blog").mkdir(parents=True)
            Path("templates/index.html").write_text("<p>i</p>", encoding="utf-8")
            Path("templates/blog/post.html").write_text("<p>p</p>", encoding="utf-8")
            result = self.runner.invoke(cli, ["build", "templates", "--out-dir", "out"])
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertTrue(Path("out/index.html.py").exists())
            self.assertTrue(Path("out/blog/post.html.py").exists())
        self.assertIn("Compiled 2 template(s)", result.output)

    def test_build_uses_configured_dir_name(self):
        with self.runner.isolated_filesystem():
            Path("templates").mkdir()
            Path("templates/index.html").write_text("<p>i</p>", encoding="utf-8")
            result = self.runner.invoke(
                cli, ["build", "templates"], env={"MACROVIEW_COMPILED_DIR": "cache"}
            )
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertTrue(Path("templates/cache/index.html.py").exists())
            self.assertFalse(Path("templates/compiled").exists())

    def test_build_failure_exit_code(self):
        with self.runner.isolated_filesystem():
            Path("templates").mkdir()
            Path("templates/bad.html").write_text("<p m:foreach></p>", encoding="utf-8")
            result = self.runner.invoke(cli, ["build", "templates"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("bad.html", result.output)

    def test_watch_rebuilds_on_change(self):
        async def fake_awatch(path, watch_filter=None):
            yield {(Change.modified, str(Path(path) / "index.html"))}

        with self.runner.isolated_filesystem():
            Path("templates").mkdir()
            Path("templates/index.html").write_text("<p>i</p>", encoding="utf-8")
            with patch("watchfiles.awatch", fake_awatch):
                result = self.runner.invoke(cli, ["watch", "templates"])
            self.assertTrue(Path("templates/compiled/index.html.py").exists())
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Changed: index.html", result.output)
        self.assertEqual(result.output.count("Compiled 1 template(s)"), 2)
