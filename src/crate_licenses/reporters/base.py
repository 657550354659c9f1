"""Base interface for output reporters.

Reporters turn the aggregated license report into a document (Markdown,
HTML, plain text, etc.).
"""

from abc import ABC, abstractmethod
from pathlib import Path

from crate_licenses.models import Report


class BaseReporter(ABC):
    """Abstract base class for output reporters."""

    @abstractmethod
    def render(self, report: Report) -> str:
        """Render a report to formatted output.

        Args:
            report: Overview and license texts to render.

        Returns:
            Rendered output as a string.
        """
        ...

    def write(self, report: Report, output_path: Path) -> None:
        """Render and write output to a file.

        Args:
            report: Overview and license texts to render.
            output_path: Path to write the output file.
        """
        content = self.render(report)
        output_path.write_text(content, encoding="utf-8")

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the output format name.

        Returns:
            Format name like "markdown", "html", etc.
        """
        ...

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Return the default file extension for this format.

        Returns:
            Extension like ".md", ".html", etc.
        """
        ...
