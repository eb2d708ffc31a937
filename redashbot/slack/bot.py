"""Slack bot that answers Redash query/dashboard links with screenshots and tables."""

from __future__ import annotations
import asyncio
import logging
import sys
from typing import Any, Dict, Optional, Set

from slack_bolt.adapter.socket_mode.aiohttp import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from redashbot.config import Config, load_config
from redashbot.errors import ConfigurationError, UploadError
from redashbot.patterns import Shape, build_routes
from redashbot.pipeline import Dispatcher
from redashbot.redash_client import RedashClient
from redashbot.screenshot import Screenshotter

# ---------------------------------------------------------------------------
# Globals and constants
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)

URL_SHAPES = frozenset(shape for shape in Shape if shape is not Shape.INVITE)
INVITE_SHAPES = frozenset({Shape.INVITE})
# message subtypes that still carry a user-authored text worth scanning
HANDLED_SUBTYPES = {None, "thread_broadcast", "file_share"}

# ---------------------------------------------------------------------------
# Chat context
# ---------------------------------------------------------------------------


class SlackChatContext:
    """Reply, upload and react in the channel of one inbound message."""

    def __init__(self, client: AsyncWebClient, channel: str, ts: Optional[str],
                 thread_ts: Optional[str] = None) -> None:
        self.client = client
        self.channel = channel
        self.ts = ts
        self.thread_ts = thread_ts

    def _target(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"channel": self.channel}
        if self.thread_ts:
            kwargs["thread_ts"] = self.thread_ts
        return kwargs

    async def reply(self, text: str) -> None:
        await self.client.chat_postMessage(text=text, **self._target())

    async def upload(self, path: str, filename: str, comment: str) -> None:
        try:
            await self.client.files_upload_v2(
                file=path,
                filename=filename,
                initial_comment=comment,
                **self._target(),
            )
        except SlackApiError as exc:
            raise UploadError(f"Upload of {filename} failed: {exc.response.get('error')}") from exc

    async def react(self, name: str) -> None:
        if not self.ts:
            return
        await self.client.reactions_add(channel=self.channel, timestamp=self.ts, name=name)


# ---------------------------------------------------------------------------
# Trigger handling
# ---------------------------------------------------------------------------

def classify_trigger(event: Dict[str, Any], bot_user_id: Optional[str]) -> str:
    """Map a message event onto direct_message / direct_mention / mention / ambient."""
    if event.get("channel_type") == "im":
        return "direct_message"
    text = event.get("text") or ""
    if bot_user_id:
        mention = f"<@{bot_user_id}>"
        if text.lstrip().startswith(mention):
            return "direct_mention"
        if mention in text:
            return "mention"
    return "ambient"


def allowed_shapes(trigger: str, config: Config) -> Set[Shape]:
    shapes: Set[Shape] = set()
    if trigger in config.message_events:
        shapes |= URL_SHAPES
    if trigger in config.invite_message_events:
        shapes |= INVITE_SHAPES
    return shapes


def build_dispatcher(config: Config) -> Dispatcher:
    hosts = list(config.hosts.values())
    clients = {host.url: RedashClient(host, timeout=config.request_timeout) for host in hosts}
    screenshotter = Screenshotter(
        executable_path=config.browser_path,
        settle_delay=config.settle_delay,
        max_browsers=config.max_browsers,
    )
    return Dispatcher(
        build_routes(hosts),
        clients,
        screenshotter,
        invite_domains=config.invite_email_domains,
    )


async def handle_message_event(event: Dict[str, Any], client: AsyncWebClient,
                               bot_user_id: Optional[str], dispatcher: Dispatcher,
                               config: Config) -> bool:
    if event.get("bot_id") or event.get("subtype") not in HANDLED_SUBTYPES:
        return False
    if bot_user_id and event.get("user") == bot_user_id:
        return False

    trigger = classify_trigger(event, bot_user_id)
    shapes = allowed_shapes(trigger, config)
    if not shapes:
        logger.debug("Ignoring %s message in %s", trigger, event.get("channel"))
        return False

    chat = SlackChatContext(client, event["channel"], event.get("ts"), event.get("thread_ts"))
    return await dispatcher.handle(event.get("text") or "", chat, shapes=shapes)


# ---------------------------------------------------------------------------
# Slack app initialization
# ---------------------------------------------------------------------------

def create_slack_app(config: Config, dispatcher: Optional[Dispatcher] = None) -> AsyncApp:
    if not config.socket_mode and not config.slack_signing_secret:
        raise ConfigurationError("Set SLACK_APP_TOKEN (Socket Mode) or SLACK_SIGNING_SECRET (HTTP mode).")

    dispatcher = dispatcher or build_dispatcher(config)
    app = AsyncApp(token=config.slack_bot_token, signing_secret=config.slack_signing_secret)

    @app.event("message")
    async def handle_message(event, client, context):
        await handle_message_event(event, client, context.bot_user_id, dispatcher, config)

    # mentions also arrive as plain message events, which are the ones handled
    @app.event("app_mention")
    async def handle_app_mention(event):
        return None

    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

async def _serve_socket_mode(app: AsyncApp, app_token: str) -> None:
    handler = AsyncSocketModeHandler(app, app_token)
    await handler.start_async()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = load_config()
        slack_app = create_slack_app(config)
    except ConfigurationError as exc:
        logger.error("Error: %s", exc)
        sys.exit(1)

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    logger.info("Watching Redash hosts: %s", ", ".join(config.hosts))

    if config.socket_mode:
        logger.info("Starting Slack bot (Socket Mode).")
        asyncio.run(_serve_socket_mode(slack_app, config.slack_app_token))
    else:
        logger.info("Starting Slack bot on port %s.", config.port)
        slack_app.start(port=config.port)


if __name__ == "__main__":
    main()
