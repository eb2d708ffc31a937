'''Filenames and captions for artifacts posted back to Slack.'''
from __future__ import annotations
import re
from typing import Union

from redashbot.models import Dashboard, Query, Visualization

_UNSAFE_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
_SPACE_RE = re.compile(r'\s+')

Id = Union[int, str]


def safe_filename(stem: str, extension: str = 'png') -> str:
    '''Make ``stem`` safe as a filename and inside a Slack message.'''
    cleaned = _UNSAFE_RE.sub('_', stem or '')
    cleaned = _SPACE_RE.sub(' ', cleaned).strip(' .') or 'redash'
    return f'{cleaned}.{extension}'


def visualization_filename(query: Query, visualization: Visualization) -> str:
    return safe_filename(
        f'{query.name}-{visualization.name}-query-{query.id}-visualization-{visualization.id}'
    )


def widget_filename(dashboard: Dashboard, visualization: Visualization) -> str:
    query = visualization.query
    return safe_filename(
        f'{dashboard.name}-dashboard-{query.name}-{visualization.name}'
        f'-query-{query.id}-visualization-{visualization.id}'
    )


def caption(title: str, url: str) -> str:
    return f'*{title}*\nQuery URL : {url}'


def table_message(title: str, table: str) -> str:
    return f'*{title}*\n{table}'


__all__ = ['safe_filename', 'visualization_filename', 'widget_filename', 'caption', 'table_message']
