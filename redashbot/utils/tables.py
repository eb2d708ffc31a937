'''Monospace table rendering for Redash query results.'''
from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence

from redashbot.models import ResultColumn

DEFAULT_PREVIEW_ROWS = 10


def _cell(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value).replace('\n', ' ')


def render_table(columns: Sequence[ResultColumn], rows: Sequence[Dict[str, Any]], limit: Optional[int] = None) -> str:
    '''Render result rows as an aligned grid inside a Slack code block.

    The first line holds the friendly column names, the second a run of dashes
    as long as each name, then ``rows[:limit]`` (every row when ``limit`` is None).
    '''
    selected = list(rows) if limit is None else list(rows)[:max(limit, 0)]
    grid: List[List[str]] = [
        [col.label for col in columns],
        ['-' * len(col.label) for col in columns],
    ]
    for row in selected:
        grid.append([_cell(row.get(col.name)) for col in columns])

    widths = [max(len(line[idx]) for line in grid) for idx in range(len(columns))]
    lines = []
    for line in grid:
        padded = ''.join(f' {val.ljust(widths[idx])} ' for idx, val in enumerate(line))
        lines.append(padded.rstrip())
    body = '\n'.join(lines)
    return f'```{body}\n```'


__all__ = ['DEFAULT_PREVIEW_ROWS', 'render_table']
