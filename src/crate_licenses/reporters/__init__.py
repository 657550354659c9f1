"""Output reporters for rendering license reports."""

from crate_licenses.reporters.base import BaseReporter
from crate_licenses.reporters.template import TemplateReporter, default_template_text

__all__ = ["BaseReporter", "TemplateReporter", "default_template_text"]
