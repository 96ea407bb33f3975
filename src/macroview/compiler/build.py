"""Batch compilation of a template directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.template_compiler import TemplateCompiler
from macroview.config import ViewConfig

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".html"


@dataclass
class BuildSummary:
    compiled: List[Path] = field(default_factory=list)
    errors: Dict[Path, InvalidTemplateError] = field(default_factory=dict)
    out_dir: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return not self.errors


def iter_templates(templates_dir: Path, out_dir: Path) -> List[Path]:
    """All templates below ``templates_dir``, skipping hidden and output paths."""
    templates = []
    for path in sorted(templates_dir.rglob("*" + TEMPLATE_SUFFIX)):
        rel = path.relative_to(templates_dir)
        if any(part.startswith(".") for part in rel.parts):
            continue
        if out_dir in path.parents:
            continue
        templates.append(path)
    return templates


def build_project(
    templates_dir: Path,
    out_dir: Optional[Path] = None,
    compiler: Optional[TemplateCompiler] = None,
    config: Optional[ViewConfig] = None,
) -> BuildSummary:
    """Compile every template below ``templates_dir``.

    Compiled modules are written to ``out_dir`` (``<templates_dir>/compiled``
    by default, see ``ViewConfig.compiled_dir_name``) keeping the relative
    layout, e.g. ``blog/post.html`` becomes ``compiled/blog/post.html.py``. Invalid templates are reported in the
    summary and do not stop the build.
    """
    if config is None:
        config = ViewConfig()
    templates_dir = templates_dir.resolve()
    if out_dir is None:
        out_dir = templates_dir / config.compiled_dir_name
    out_dir = out_dir.resolve()
    if compiler is None:
        compiler = TemplateCompiler(macro_prefix=config.macro_prefix)

    summary = BuildSummary(out_dir=out_dir)
    for template in iter_templates(templates_dir, out_dir):
        rel = template.relative_to(templates_dir)
        try:
            source = compiler.compile(template)
        except InvalidTemplateError as e:
            logger.error("Failed to compile %s: %s", rel, e.message)
            summary.errors[rel] = e
            continue

        artifact = out_dir / rel.parent / (rel.name + ".py")
        artifact.parent.mkdir(parents=True, exist_ok=True)
        artifact.write_text(source, encoding="utf-8")
        logger.info("Compiled %s", rel)
        summary.compiled.append(rel)
    return summary
