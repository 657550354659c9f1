"""Template reporter for generating license attribution files.

Renders the report with Jinja2. The template sees two variables:
``overview`` (rows with ``count``, ``name`` and ``id``) and ``licenses``
(rows with ``name``, ``id``, ``source_path``, ``text`` and ``used_by``).
"""

from importlib.resources import files
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, Template, select_autoescape

from crate_licenses.models import Report
from crate_licenses.reporters.base import BaseReporter

DEFAULT_TEMPLATE_NAME = "licenses.md.j2"

_TEMPLATE_SUFFIXES = (".j2", ".jinja", ".jinja2")

_FORMAT_NAMES = {
    ".md": "markdown",
    ".html": "html",
    ".htm": "html",
    ".xml": "xml",
    ".txt": "text",
}


def default_template_text() -> str:
    """Return the source of the bundled Markdown template."""
    return (
        files("crate_licenses")
        .joinpath("templates")
        .joinpath(DEFAULT_TEMPLATE_NAME)
        .read_text(encoding="utf-8")
    )


def _output_suffix(template_name: str) -> str:
    path = Path(template_name)
    if path.suffix in _TEMPLATE_SUFFIXES:
        path = path.with_suffix("")
    return path.suffix or ".txt"


class TemplateReporter(BaseReporter):
    """Reporter that renders license reports through a Jinja2 template.

    Custom templates named ``*.html``, ``*.htm`` or ``*.xml`` (optionally
    followed by ``.j2``) are autoescaped, so crate-supplied license text
    cannot inject markup. The bundled Markdown template is not escaped.

    Attributes:
        template: The Jinja2 template to use for rendering.
        template_name: File name of the template.
    """

    def __init__(self, template_path: Optional[Path] = None) -> None:
        """Initialize the reporter.

        Args:
            template_path: Optional path to a custom Jinja2 template.
                If not provided, uses the default bundled template.
        """
        if template_path:
            env = Environment(
                loader=FileSystemLoader(template_path.parent),
                autoescape=select_autoescape(
                    enabled_extensions=(
                        "html", "htm", "xml", "html.j2", "htm.j2", "xml.j2"
                    ),
                    default_for_string=False,
                ),
                keep_trailing_newline=True,
            )
            self.template_name = template_path.name
            self.template = env.get_template(template_path.name)
        else:
            self.template_name = DEFAULT_TEMPLATE_NAME
            self.template = self._load_default_template()

    def _load_default_template(self) -> Template:
        env = Environment(autoescape=False, keep_trailing_newline=True)
        return env.from_string(default_template_text())

    def render(self, report: Report) -> str:
        """Render the report with the template.

        Args:
            report: Overview and license texts to render.

        Returns:
            Rendered document as a string.
        """
        return self.template.render(**report.context())

    @property
    def format_name(self) -> str:
        """Return the output format name, derived from the template name.

        Returns:
            A name such as "markdown" or "html".
        """
        suffix = _output_suffix(self.template_name)
        return _FORMAT_NAMES.get(suffix, suffix.lstrip("."))

    @property
    def default_extension(self) -> str:
        """Return the file extension the template produces.

        Returns:
            An extension such as ".md".
        """
        return _output_suffix(self.template_name)
