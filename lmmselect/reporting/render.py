"""
HTML and Markdown rendering of report tables.

A report is a title, an ordered mapping of section heading to DataFrame,
optional free-text notes and optional figure paths (linked, not embedded).
"""

from __future__ import annotations

import html
import logging
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence, Union

import pandas as pd

from lmmselect.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

Tables = Union[pd.DataFrame, Mapping[str, pd.DataFrame]]

_CSS = """
body { font-family: Georgia, "Times New Roman", serif; font-size: 14px;
       color: #333; max-width: 1100px; margin: 0 auto; padding: 32px 20px; }
h1 { font-size: 22px; border-bottom: 2px solid #2166ac; padding-bottom: 8px; }
h2 { font-size: 17px; color: #2166ac; margin-top: 28px; }
table { border-collapse: collapse; margin: 12px 0; font-size: 13px; }
th, td { border: 1px solid #ccc; padding: 4px 10px; text-align: right; }
th { background: #eef3f8; }
td:first-child, th:first-child { text-align: left; }
.meta, .notes { color: #555; font-style: italic; }
img { max-width: 100%; }
"""


def _as_sections(tables: Tables) -> dict[str, pd.DataFrame]:
    if isinstance(tables, pd.DataFrame):
        return {'': tables}
    return dict(tables)


def render_html(
    tables: Tables,
    *,
    title: str = "Model comparison",
    notes: Sequence[str] = (),
    figures: Sequence[str | Path] = (),
) -> str:
    """Render tables as a standalone HTML document."""
    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{html.escape(title)}</title>",
        f"<style>{_CSS}</style>",
        "</head>",
        "<body>",
        f"<h1>{html.escape(title)}</h1>",
        f'<p class="meta">Generated {datetime.now().strftime("%Y-%m-%d %H:%M")}</p>',
    ]
    for heading, df in _as_sections(tables).items():
        if heading:
            parts.append(f"<h2>{html.escape(heading)}</h2>")
        parts.append(df.to_html(escape=True, na_rep='', border=0))
    if notes:
        parts.append('<div class="notes">')
        parts.extend(f"<p>{html.escape(n)}</p>" for n in notes)
        parts.append("</div>")
    for fig in figures:
        src = html.escape(str(fig))
        parts.append(f'<figure><img src="{src}" alt="{src}"></figure>')
    parts += ["</body>", "</html>"]
    return '\n'.join(parts) + '\n'


def _markdown_cell(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ''
    return str(value).replace('|', r'\|').replace('\n', ' ')


def markdown_table(df: pd.DataFrame) -> str:
    """GitHub-flavoured pipe table, index as the first column."""
    index_name = df.index.name or ''
    header = [index_name, *(str(c) for c in df.columns)]
    lines = [
        '| ' + ' | '.join(_markdown_cell(h) for h in header) + ' |',
        '|' + '|'.join(['---'] + ['---:'] * len(df.columns)) + '|',
    ]
    for idx, row in df.iterrows():
        cells = [_markdown_cell(idx), *(_markdown_cell(v) for v in row)]
        lines.append('| ' + ' | '.join(cells) + ' |')
    return '\n'.join(lines)


def render_markdown(
    tables: Tables,
    *,
    title: str = "Model comparison",
    notes: Sequence[str] = (),
    figures: Sequence[str | Path] = (),
) -> str:
    """Render tables as a Markdown document."""
    parts = [
        f"# {title}",
        "",
        f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        "",
    ]
    for heading, df in _as_sections(tables).items():
        if heading:
            parts += [f"## {heading}", ""]
        parts += [markdown_table(df), ""]
    for n in notes:
        parts += [n, ""]
    for fig in figures:
        parts += [f"![{fig}]({fig})", ""]
    return '\n'.join(parts)


def write_report(
    path: str | Path,
    tables: Tables,
    *,
    title: str = "Model comparison",
    notes: Sequence[str] = (),
    figures: Sequence[str | Path] = (),
) -> Path:
    """Write an HTML (.html/.htm) or Markdown (.md) report.

    Raises:
        ValidationError: Unsupported file extension.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in ('.html', '.htm'):
        text = render_html(tables, title=title, notes=notes, figures=figures)
    elif suffix in ('.md', '.markdown'):
        text = render_markdown(tables, title=title, notes=notes, figures=figures)
    else:
        raise ValidationError(
            f"write_report: unsupported extension '{path.suffix}'; "
            f"use .html or .md"
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    logger.info("Report written to %s (%.1f KB)", path, path.stat().st_size / 1024)
    return path
