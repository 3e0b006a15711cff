"""
Comparison tables and report rendering.

Public API:
    comparison_table() — side-by-side estimates and fit statistics
    anova_table()      — sequence of likelihood ratio tests
    render_html()      — standalone HTML document
    render_markdown()  — Markdown document
    write_report()     — render by file extension and write
"""

from lmmselect.reporting.render import (
    markdown_table,
    render_html,
    render_markdown,
    write_report,
)
from lmmselect.reporting.tables import anova_table, comparison_table

__all__ = [
    "comparison_table",
    "anova_table",
    "render_html",
    "render_markdown",
    "markdown_table",
    "write_report",
]
