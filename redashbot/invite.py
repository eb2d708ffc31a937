"""`invite <email>` chat command: create a Redash user for the given address."""

from __future__ import annotations
import asyncio
import logging
import re
from typing import TYPE_CHECKING, List, Optional, Tuple

from redashbot.errors import FetchError, ParseError
from redashbot.redash_client import RedashClient

if TYPE_CHECKING:
    from redashbot.pipeline import ChatContext

logger = logging.getLogger(__name__)
MAILTO_DISPLAY_RE = re.compile(r"\|.*>")

INVALID_FORMAT_MESSAGE = "invalid format email."


def parse_invite_address(token: str) -> str:
    """Return the email address inside ``token``.

    Slack turns typed addresses into ``<mailto:a@b.com|a@b.com>``; the
    display part between ``|`` and ``>`` is used. Plain tokens pass through.
    """
    if "mailto:" not in token:
        return token
    found = MAILTO_DISPLAY_RE.search(token)
    if not found:
        raise ParseError(f"Cannot read an email address from {token!r}")
    return found.group(0)[1:-1]


def split_address(mail: str) -> Tuple[str, str]:
    name, _, domain = mail.partition("@")
    return name, domain


def is_domain_allowed(domain: str, allowed_domains: Optional[List[str]]) -> bool:
    if allowed_domains is None:
        return True
    return domain in allowed_domains


async def invite(
    client: RedashClient,
    token: str,
    chat: "ChatContext",
    allowed_domains: Optional[List[str]] = None,
) -> None:
    try:
        mail = parse_invite_address(token)
    except ParseError:
        logger.info("[Invite] unparsable address %r", token)
        await chat.reply(INVALID_FORMAT_MESSAGE)
        return

    name, domain = split_address(mail)
    logger.info("[Invite] name=%s domain=%s host=%s", name, domain, client.host.url)

    if not is_domain_allowed(domain, allowed_domains):
        await chat.reply(f"The domain this email address is not allowed to invite.\n{mail}")
        return

    try:
        result = await asyncio.to_thread(client.create_user, name, mail)
    except FetchError as exc:
        logger.warning("[Invite] %s failed: %s", mail, exc)
        await chat.reply(f"Error {exc}")
        return

    if result.invite_link:
        await chat.reply(
            f"Sent redash invite to {mail}.\nPlease send this URL to the person you invited.\n{result.invite_link}"
        )
    else:
        await chat.reply(f"Sent redash invite to {mail}.")


__all__ = ["INVALID_FORMAT_MESSAGE", "parse_invite_address", "split_address", "is_domain_allowed", "invite"]
