"""Template loader - finds templates, compiles them and loads the result."""

import hashlib
import importlib.util
import logging
import os
import tempfile
import warnings
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.template_compiler import TemplateCompiler
from macroview.config import DEFAULT_PRIORITY, ViewConfig

logger = logging.getLogger(__name__)

RenderFunction = Callable[[Any], None]


@dataclass
class TemplateInfo:
    """Where a template was found."""

    name: str
    file: Path
    compiled: bool
    directory: Optional[Path] = None
    priority: Optional[int] = None


class TemplateLoader:
    """Finds templates in prioritised directories and loads them.

    When ``compile_templates`` is enabled, ``.html`` templates are compiled
    into ``<dir>/compiled/<name>.py`` on lookup. A template that fails to
    compile is reported with a warning and the lookup falls back to the other
    candidates (a previously compiled file or a hand-written ``.py`` view).
    """

    def __init__(
        self,
        config: Optional[ViewConfig] = None,
        compiler: Optional[TemplateCompiler] = None,
    ) -> None:
        self.config = config if config is not None else ViewConfig()
        self.compiler = (
            compiler
            if compiler is not None
            else TemplateCompiler(macro_prefix=self.config.macro_prefix)
        )
        self._compiled: Dict[Tuple[Path, str], Path] = {}
        self._modules: Dict[Path, Tuple[float, RenderFunction]] = {}

    def add_template_dir(
        self, path: Union[str, Path], priority: int = DEFAULT_PRIORITY
    ) -> None:
        self.config.add_template_dir(path, priority)

    def template_dirs(self) -> List[Tuple[Path, int]]:
        """Template directories, highest priority first."""
        return sorted(
            self.config.template_dirs.items(), key=lambda item: item[1], reverse=True
        )

    def compiled_path(self, directory: Path, name: str) -> Path:
        return directory / self.config.compiled_dir_name / (name + ".py")

    def compile_template(self, directory: Path, name: str) -> Path:
        """Compile ``directory/name`` and return the path of the compiled module.

        The template is only recompiled when the source is newer than the
        compiled file.
        """
        key = (directory, name)
        source = directory / name
        compiled = self.compiled_path(directory, name)
        cached = self._compiled.get(key)
        if cached is not None and self._is_fresh(source, cached):
            return cached
        if self._is_fresh(source, compiled):
            self._compiled[key] = compiled
            return compiled

        logger.info("Compiling template: %s", source)
        output = self.compiler.compile(source)
        try:
            compiled.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InvalidTemplateError(
                f"Could not create directory: {compiled.parent}"
            ) from e
        self._write_atomic(compiled, output)
        self._compiled[key] = compiled
        return compiled

    def _is_fresh(self, source: Path, compiled: Path) -> bool:
        try:
            return compiled.stat().st_mtime >= source.stat().st_mtime
        except FileNotFoundError:
            return False

    def _write_atomic(self, path: Path, content: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except OSError as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise InvalidTemplateError(
                f"Could not write compiled template: {path}"
            ) from e

    def find_template(self, name: str) -> Optional[TemplateInfo]:
        """Find a template by name in the template directories."""
        if os.path.isabs(name):
            return TemplateInfo(name=name, file=Path(name), compiled=False)

        for directory, priority in self.template_dirs():
            candidates = [
                (self.compiled_path(directory, name), True),
                (directory / (name + ".py"), False),
                (directory / ("_" + name + ".py"), False),
            ]
            if self.config.compile_templates and name.endswith(".html"):
                if (directory / name).exists():
                    try:
                        compiled = self.compile_template(directory, name)
                        return TemplateInfo(name, compiled, True, directory, priority)
                    except InvalidTemplateError as e:
                        logger.warning("Could not compile template %s: %s", name, e)
                        warnings.warn(str(e), stacklevel=2)

            for path, compiled_flag in candidates:
                if path.exists():
                    return TemplateInfo(name, path, compiled_flag, directory, priority)
        return None

    def find_layout(self, template: str) -> Optional[str]:
        """Find the closest ``layout.<ext>`` template for a template name."""
        if os.path.isabs(template):
            return None
        path = PurePosixPath(template)
        extension = path.suffix
        directory = path.parent
        while True:
            if str(directory) == ".":
                candidate = "layout" + extension
            else:
                candidate = f"{directory}/layout{extension}"
            if self.find_template(candidate) is not None:
                return candidate
            if str(directory) == ".":
                return None
            directory = directory.parent

    def load(self, name: str) -> RenderFunction:
        """Find a template and return its ``render`` function."""
        info = self.find_template(name)
        if info is None:
            raise FileNotFoundError(f"Template not found: {name}")
        return self.load_file(info.file)

    def load_file(self, path: Path) -> RenderFunction:
        """Import a compiled (or hand-written) view module."""
        path = path.resolve()
        mtime = path.stat().st_mtime
        cached = self._modules.get(path)
        if cached and cached[0] == mtime:
            return cached[1]

        module_name = (
            "macroview_template_" + hashlib.md5(str(path).encode("utf-8")).hexdigest()
        )
        spec = importlib.util.spec_from_file_location(module_name, path)
        if not spec or not spec.loader:
            raise ImportError(f"Cannot load template module {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        render = getattr(module, "render", None)
        if not callable(render):
            raise InvalidTemplateError("Template module defines no render()", str(path))
        self._modules[path] = (mtime, render)
        return render

    def invalidate_cache(self) -> None:
        self._compiled.clear()
        self._modules.clear()
