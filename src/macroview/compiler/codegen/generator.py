"""Python module generation for compiled templates."""

from typing import List, Optional

from macroview import __version__
from macroview.compiler.codegen.template import INDENT_UNIT, TemplateCodegen
from macroview.compiler.nodes import TemplateNode


class CodeGenerator:
    """Generates the source of a compiled template module.

    The module defines ``render(view)``; everything the template needs at
    run time is reached through ``view``.
    """

    def __init__(self, function_name: str = "render") -> None:
        self.function_name = function_name
        self.template_codegen = TemplateCodegen()

    def generate(self, root: TemplateNode, source_name: Optional[str] = None) -> str:
        render = self.template_codegen.generate(root, level=1)

        lines: List[str] = []
        origin = f" from {source_name}" if source_name else ""
        lines.append(f"# Generated by macroview {__version__}{origin}. Do not edit.")
        lines.extend(self._generate_imports())
        lines.append("")
        lines.append("")
        lines.append(f"def {self.function_name}(view):")
        lines.append(f"{INDENT_UNIT}write = view.write")
        lines.extend(render.setup)
        lines.extend(render.body)
        return "\n".join(lines) + "\n"

    def _generate_imports(self) -> List[str]:
        return ["from macroview.runtime.escape import escape_html"]
