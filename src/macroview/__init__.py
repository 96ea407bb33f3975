try:
    from ._version import __version__
except ImportError:
    from importlib.metadata import version, PackageNotFoundError

    try:
        __version__ = version("macroview")
    except PackageNotFoundError:
        __version__ = "unknown"

from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.code import CodeNode
from macroview.compiler.dispatcher import MacroDispatcher, MacroRegistry
from macroview.compiler.macros import DefaultMacros, default_registry
from macroview.compiler.template_compiler import TemplateCompiler
from macroview.config import ViewConfig
from macroview.runtime.escape import escape_html
from macroview.runtime.loader import TemplateLoader

__all__ = [
    "TemplateCompiler",
    "TemplateLoader",
    "ViewConfig",
    "MacroRegistry",
    "MacroDispatcher",
    "DefaultMacros",
    "default_registry",
    "CodeNode",
    "InvalidTemplateError",
    "escape_html",
]
