"""View configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from macroview.compiler.parser import DEFAULT_MACRO_PREFIX

DEFAULT_PRIORITY = 5

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class ViewConfig:
    """Settings for template discovery and compilation."""

    # template directory -> priority (higher is searched first)
    template_dirs: Dict[Path, int] = field(default_factory=dict)
    compile_templates: bool = False
    macro_prefix: str = DEFAULT_MACRO_PREFIX
    compiled_dir_name: str = "compiled"

    def add_template_dir(
        self, path: Union[str, Path], priority: int = DEFAULT_PRIORITY
    ) -> None:
        self.template_dirs[Path(path)] = priority

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: object
    ) -> "ViewConfig":
        """Build a configuration from ``MACROVIEW_*`` environment variables.

        Keyword arguments take precedence over the environment.
        """
        env = os.environ if environ is None else environ
        config = cls()

        dirs = env.get("MACROVIEW_TEMPLATE_DIRS")
        if dirs:
            for entry in dirs.split(os.pathsep):
                if entry.strip():
                    config.add_template_dir(entry.strip())

        compile_templates = env.get("MACROVIEW_COMPILE_TEMPLATES")
        if compile_templates is not None:
            config.compile_templates = compile_templates.strip().lower() in _TRUE_VALUES

        prefix = env.get("MACROVIEW_MACRO_PREFIX")
        if prefix:
            config.macro_prefix = prefix

        compiled_dir = env.get("MACROVIEW_COMPILED_DIR")
        if compiled_dir:
            config.compiled_dir_name = compiled_dir

        for key, value in overrides.items():
            if not hasattr(config, key):
                raise TypeError(f"Unknown configuration option: {key}")
            setattr(config, key, value)
        return config
