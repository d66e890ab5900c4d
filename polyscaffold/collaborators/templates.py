"""Jinja2 rendering of template files, directories and globs into the project tree."""

from __future__ import annotations

import glob
import logging
import os
from collections.abc import Mapping, Sequence
from typing import Any

from jinja2 import Environment, select_autoescape

from featurekit.feature_types import TemplateInstruction

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".j2"
BUILTIN_TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "features", "templates")


def create_jinja_env() -> Environment:
    # generated files are source code, not HTML
    env = Environment(
        autoescape=select_autoescape([]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["kebab_case"] = lambda s: str(s).replace("_", "-").replace(" ", "-").lower()
    return env


def strip_template_suffix(path: str) -> str:
    return path[: -len(TEMPLATE_SUFFIX)] if path.endswith(TEMPLATE_SUFFIX) else path


class Jinja2TemplateRenderer:
    """
    Render `TemplateInstruction`s.

    `source` may be a file, a directory (every `*.j2` below it, keeping the
    relative layout) or a glob. Relative sources are looked up in
    `search_paths` (built-in templates first), then the working directory.
    A `.j2` suffix is dropped from output names. When `destination` has no
    extension, single files land inside it under their own name.
    """

    def __init__(self, search_paths: Sequence[str] | None = None, env: Environment | None = None) -> None:
        self.search_paths = list(search_paths) if search_paths is not None else [BUILTIN_TEMPLATE_DIR]
        self.env = env or create_jinja_env()

    def locate(self, source: str) -> str:
        if os.path.isabs(source):
            return source
        for base in (*self.search_paths, os.getcwd()):
            candidate = os.path.join(base, source)
            if os.path.exists(candidate) or glob.glob(candidate):
                return candidate
        return source

    def render(
        self,
        instruction: TemplateInstruction,
        *,
        project_dir: str,
        context: Mapping[str, Any],
    ) -> list[str]:
        source_path = self.locate(instruction.source)
        written: list[str] = []

        if os.path.isdir(source_path):
            # os.walk rather than glob so dotfile templates (.prettierrc.j2) are included
            matches = [
                os.path.join(dirpath, filename)
                for dirpath, _dirnames, filenames in os.walk(source_path)
                for filename in filenames
                if filename.endswith(TEMPLATE_SUFFIX)
            ]
            for match in sorted(matches):
                relative = strip_template_suffix(os.path.relpath(match, source_path))
                dest = os.path.join(project_dir, instruction.destination, relative)
                written.append(self._render_file(match, dest, context))
            return written

        matches = [source_path] if os.path.isfile(source_path) else sorted(glob.glob(source_path, recursive=True))
        for match in matches:
            if not os.path.isfile(match):
                continue
            dest = os.path.join(project_dir, instruction.destination)
            if not os.path.splitext(instruction.destination)[1]:
                dest = os.path.join(dest, strip_template_suffix(os.path.basename(match)))
            written.append(self._render_file(match, dest, context))
        return written

    def _render_file(self, template_path: str, dest_path: str, context: Mapping[str, Any]) -> str:
        with open(template_path, "r", encoding="utf-8") as handle:
            template = self.env.from_string(handle.read())
        rendered = template.render(**dict(context))

        dest_dir = os.path.dirname(dest_path)
        if dest_dir and not os.path.isdir(dest_dir):
            os.makedirs(dest_dir, exist_ok=True)
            logger.debug("Created directory %s", dest_dir)
        with open(dest_path, "w", encoding="utf-8") as handle:
            handle.write(rendered)
        return os.path.normpath(dest_path)


__all__ = [
    "BUILTIN_TEMPLATE_DIR",
    "Jinja2TemplateRenderer",
    "TEMPLATE_SUFFIX",
    "create_jinja_env",
    "strip_template_suffix",
]
