"""Main CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import Optional

import rich_click as click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax

from macroview import __version__
from macroview.compiler.build import TEMPLATE_SUFFIX, BuildSummary, build_project
from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.macros import default_registry
from macroview.compiler.template_compiler import TemplateCompiler
from macroview.config import ViewConfig

console = Console()
err_console = Console(stderr=True)

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_HELPTEXT_FIRST = True
click.rich_click.STYLE_COMMANDS_TABLE_SHOW_LINES = False
click.rich_click.STYLE_COMMANDS_TABLE_PAD_EDGE = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running 'macroview --help' for more information."

click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_OPTION = "cyan"
click.rich_click.STYLE_SWITCH = "cyan"
click.rich_click.STYLE_METAVAR = "dim white"
click.rich_click.STYLE_USAGE_COMMAND = "cyan"
click.rich_click.STYLE_USAGE = "dim"

click.rich_click.COMMAND_GROUPS = {
    "macroview": [
        {
            "name": "Commands",
            "commands": ["compile", "build", "watch"],
        }
    ]
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )


def _make_compiler(config: ViewConfig, prefix: Optional[str]) -> TemplateCompiler:
    return TemplateCompiler(
        registry=default_registry(),
        macro_prefix=prefix or config.macro_prefix,
    )


def _report_build(summary: BuildSummary) -> None:
    for rel, error in summary.errors.items():
        err_console.print(f"[red]✗[/] {escape(str(rel))}: {escape(error.message)}")
    console.print(
        f"✅ Compiled {len(summary.compiled)} template(s) into [cyan]{summary.out_dir}[/]"
        + (f", [red]{len(summary.errors)} failed[/]" if summary.errors else "")
    )


@click.group(
    help=f"""
[bold white on cyan] macroview [/] [bold cyan]v{__version__}[/] Compile macro-annotated HTML templates to Python.

Run [bold cyan]macroview compile TEMPLATE[/] to print the generated view code.
Run [bold cyan]macroview build DIR[/] to compile a whole template directory.
"""
)
@click.version_option(__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    _configure_logging(verbose)


@cli.command()
@click.argument(
    "template", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option(
    "-o",
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the generated module to a file instead of printing it.",
)
@click.option("--prefix", default=None, help="Macro attribute prefix (default: m:)")
def compile(template: Path, out: Optional[Path], prefix: Optional[str]) -> None:
    """Compile a single template."""
    compiler = _make_compiler(ViewConfig.from_env(), prefix)
    try:
        source = compiler.compile(template)
    except InvalidTemplateError as e:
        err_console.print(f"[bold red]Invalid template:[/] {escape(str(e))}")
        sys.exit(1)

    if out is None:
        console.print(Syntax(source, "python", theme="ansi_dark"))
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(source, encoding="utf-8")
    console.print(f"✅ Wrote [cyan]{out}[/]")


@cli.command()
@click.argument(
    "templates_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: TEMPLATES_DIR/compiled, or MACROVIEW_COMPILED_DIR).",
)
@click.option("--prefix", default=None, help="Macro attribute prefix (default: m:)")
def build(templates_dir: Path, out_dir: Optional[Path], prefix: Optional[str]) -> None:
    """Compile every template in a directory."""
    console.print(f"🔨 Building [cyan]{templates_dir}[/]...")
    config = ViewConfig.from_env()
    summary = build_project(
        templates_dir, out_dir, compiler=_make_compiler(config, prefix), config=config
    )
    _report_build(summary)
    if not summary.ok:
        sys.exit(1)


@cli.command()
@click.argument(
    "templates_dir", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: TEMPLATES_DIR/compiled, or MACROVIEW_COMPILED_DIR).",
)
@click.option("--prefix", default=None, help="Macro attribute prefix (default: m:)")
def watch(templates_dir: Path, out_dir: Optional[Path], prefix: Optional[str]) -> None:
    """Rebuild a template directory whenever a template changes."""
    import asyncio

    from watchfiles import awatch

    config = ViewConfig.from_env()
    compiler = _make_compiler(config, prefix)
    resolved_out = (out_dir or templates_dir / config.compiled_dir_name).resolve()

    def is_template(change: object, path: str) -> bool:
        resolved = Path(path).resolve()
        return path.endswith(TEMPLATE_SUFFIX) and resolved_out not in resolved.parents

    async def run() -> None:
        _report_build(build_project(templates_dir, out_dir, compiler=compiler, config=config))
        console.print("👀 Watching for changes (Ctrl+C to stop)")
        async for changes in awatch(templates_dir, watch_filter=is_template):
            changed = sorted({Path(path).name for _, path in changes})
            console.print(f"🔄 Changed: [cyan]{', '.join(changed)}[/]")
            _report_build(build_project(templates_dir, out_dir, compiler=compiler, config=config))

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("Stopped.")


if __name__ == "__main__":
    cli()
