"""Recognise Redash URLs (and the invite command) in Slack message text."""

from __future__ import annotations
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Pattern, Tuple

from redashbot.config import HostConfig

QUERY_PREFIX = r"https?://{domain}/queries/(\d+)(?:/source)?/?"


class Shape(str, Enum):
    VISUALIZATION = "visualization"
    DASHBOARD = "dashboard"
    TABLE_ALL = "table_all"
    TABLE_LIMIT = "table_limit"
    TABLE_PREVIEW = "table_preview"
    INVITE = "invite"


# Registration order matters: the first matching route handles the message.
URL_SHAPES: Tuple[Tuple[Shape, str], ...] = (
    (Shape.VISUALIZATION, QUERY_PREFIX + r"#(\d+)"),
    (Shape.DASHBOARD, r"https?://{domain}/dashboard/([^?/|>\s]+)"),
    (Shape.TABLE_ALL, QUERY_PREFIX + r"#table-all"),
    (Shape.TABLE_LIMIT, QUERY_PREFIX + r"#table-(\d+)"),
    (Shape.TABLE_PREVIEW, QUERY_PREFIX + r"(?:#table)?"),
)
INVITE_PATTERN = r"invite (\S+@\S+\.\S+)"


@dataclass(frozen=True)
class Route:
    host: HostConfig
    shape: Shape
    regex: Pattern[str]


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    url: str
    groups: Tuple[Optional[str], ...]

    @property
    def host(self) -> HostConfig:
        return self.route.host

    @property
    def shape(self) -> Shape:
        return self.route.shape


def build_routes(hosts: Iterable[HostConfig]) -> Tuple[Route, ...]:
    """Build the read-only route table consulted for every message."""
    hosts = list(hosts)
    routes = []
    for host in hosts:
        domain = re.escape(host.domain)
        for shape, template in URL_SHAPES:
            routes.append(Route(host=host, shape=shape, regex=re.compile(template.format(domain=domain))))
    if hosts:
        # only the first host's invite route could ever fire, so register just that one
        routes.append(Route(host=hosts[0], shape=Shape.INVITE, regex=re.compile(INVITE_PATTERN)))
    return tuple(routes)


def match_message(routes: Iterable[Route], text: str) -> Optional[RouteMatch]:
    """Return the first route whose pattern appears anywhere in ``text``."""
    if not text:
        return None
    for route in routes:
        found = route.regex.search(text)
        if found:
            return RouteMatch(route=route, url=found.group(0), groups=found.groups())
    return None


__all__ = ["Shape", "Route", "RouteMatch", "build_routes", "match_message"]
