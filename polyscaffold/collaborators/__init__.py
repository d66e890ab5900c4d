"""Default collaborators plugged into the composition engine."""

from polyscaffold.collaborators.edits import FileEditor
from polyscaffold.collaborators.package_manager import PnpmRefresher
from polyscaffold.collaborators.scripts import SubprocessScriptRunner
from polyscaffold.collaborators.templates import Jinja2TemplateRenderer

__all__ = ["FileEditor", "Jinja2TemplateRenderer", "PnpmRefresher", "SubprocessScriptRunner"]
