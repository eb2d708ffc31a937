"""Dispatch matched Slack messages to fetch -> render -> reply handlers."""

from __future__ import annotations
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Protocol

from redashbot.errors import FetchError
from redashbot.invite import invite
from redashbot.patterns import Route, RouteMatch, Shape, match_message
from redashbot.redash_client import RedashClient, redact
from redashbot.screenshot import Screenshotter
from redashbot.utils.naming import caption, table_message, visualization_filename, widget_filename
from redashbot.utils.tables import DEFAULT_PREVIEW_ROWS, render_table

logger = logging.getLogger(__name__)

ACK_REACTION = "ok_hand"


class ChatContext(Protocol):
    """What a handler may do in reply to the message that triggered it."""

    async def reply(self, text: str) -> None: ...

    async def upload(self, path: str, filename: str, comment: str) -> None: ...

    async def react(self, name: str) -> None: ...


class Dispatcher:
    """Matches message text against the route table and runs the matching handler."""

    def __init__(
        self,
        routes: Iterable[Route],
        clients: Dict[str, RedashClient],
        screenshotter: Screenshotter,
        *,
        invite_domains: Optional[List[str]] = None,
    ) -> None:
        self.routes = tuple(routes)
        self.clients = dict(clients)
        self.screenshotter = screenshotter
        self.invite_domains = invite_domains

    def match(self, text: str, shapes: Optional[Iterable[Shape]] = None) -> Optional[RouteMatch]:
        routes = self.routes
        if shapes is not None:
            allowed = set(shapes)
            routes = tuple(r for r in routes if r.shape in allowed)
        return match_message(routes, text)

    async def handle(self, text: str, chat: ChatContext, *, shapes: Optional[Iterable[Shape]] = None) -> bool:
        """Handle one message. Returns False when nothing in it was recognised."""
        found = self.match(text, shapes)
        if found is None:
            return False
        await self.run(found, chat)
        return True

    async def run(self, found: RouteMatch, chat: ChatContext) -> None:
        logger.info("[Dispatch] %s on %s: %s", found.shape.value, found.host.url, redact(found.url))
        try:
            if found.shape is not Shape.INVITE:
                await self._acknowledge(chat)
            await self._route(found, chat)
            logger.info("[Dispatch] ok")
        except Exception as exc:
            logger.exception("Handler for %s failed", found.shape.value)
            try:
                await chat.reply(f"Something went wrong: {exc}")
            except Exception:
                logger.exception("Could not report the failure back to Slack")

    async def _acknowledge(self, chat: ChatContext) -> None:
        try:
            await chat.react(ACK_REACTION)
        except Exception as exc:
            logger.warning("Could not add reaction: %s", exc)

    async def _route(self, found: RouteMatch, chat: ChatContext) -> None:
        client = self.clients[found.host.url]
        groups = found.groups
        if found.shape is Shape.VISUALIZATION:
            await self.post_visualization(client, groups[0], groups[1], found.url, chat)
        elif found.shape is Shape.DASHBOARD:
            await self.post_dashboard(client, groups[0], chat)
        elif found.shape is Shape.TABLE_ALL:
            await self.post_table(client, groups[0], None, chat)
        elif found.shape is Shape.TABLE_LIMIT:
            await self.post_table(client, groups[0], int(groups[1]), chat)
        elif found.shape is Shape.TABLE_PREVIEW:
            await self.post_table(client, groups[0], DEFAULT_PREVIEW_ROWS, chat)
        elif found.shape is Shape.INVITE:
            await invite(client, groups[0], chat, self.invite_domains)

    # -- handlers ------------------------------------------------------------

    async def post_visualization(
        self, client: RedashClient, query_id: str, visualization_id: str, original_url: str, chat: ChatContext
    ) -> None:
        query = await asyncio.to_thread(client.get_query, query_id)
        visualization = query.find_visualization(visualization_id)
        if visualization is None:
            raise FetchError(f"Query {query_id} has no visualization {visualization_id}")

        embed_url = client.embed_url(query_id, visualization_id)
        async with self.screenshotter.capture(embed_url) as path:
            await chat.upload(path, visualization_filename(query, visualization), caption(query.name, original_url))

    async def post_dashboard(self, client: RedashClient, dashboard_id: str, chat: ChatContext) -> None:
        dashboard = await asyncio.to_thread(client.get_dashboard, dashboard_id)
        widgets = dashboard.renderable_widgets()
        logger.info("[Dispatch] dashboard %s: %d widget(s) to render", dashboard_id, len(widgets))
        # TODO: report per-widget failures and keep going instead of aborting the rest
        for widget in widgets:
            vis = widget.visualization
            embed_url = client.embed_url(vis.query.id, vis.id)
            async with self.screenshotter.capture(embed_url) as path:
                await chat.upload(
                    path,
                    widget_filename(dashboard, vis),
                    caption(vis.query.name, client.query_url(vis.query.id, vis.id)),
                )

    async def post_table(self, client: RedashClient, query_id: str, limit: Optional[int], chat: ChatContext) -> None:
        query = await asyncio.to_thread(client.get_query, query_id)
        result = await asyncio.to_thread(client.get_query_results, query_id)
        table = render_table(result.columns, result.rows, limit)
        await chat.reply(table_message(query.name, table))


__all__ = ["ACK_REACTION", "ChatContext", "Dispatcher"]
