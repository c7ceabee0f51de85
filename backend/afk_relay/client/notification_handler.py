"""
Device-side notification handling.

Runs on the paired phone/browser, outside the server process, and is woken
by three host events:

  push               → show the notification carried in the payload
  notification click → "allow" action on a decision submits allow,
                       anything else focuses (or opens) a window
  notification close → closing a decision without acting submits dismiss

The handler keeps no state between events: everything it needs travels in
the notification's ``data`` (decisionId, toolUseId, type). Outbound work is
handed to ``event.wait_until()`` so the host keeps the event alive until the
submit call settles. Submits are fire-and-forget: failures are logged, never
retried and never shown to the user.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Claude Code"
DEFAULT_ICON = "/icon-192.png"
DEFAULT_BADGE = "/badge-72.png"
DEFAULT_TAG = "claude-code-notification"

ACTION_ALLOW = "allow"
NOTIFICATION_TYPE_DECISION = "decision"


# ---------------------------------------------------------------------------
# Notifications and events
# ---------------------------------------------------------------------------


@dataclass
class Notification:
    title: str
    body: str = ""
    icon: str = DEFAULT_ICON
    badge: str = DEFAULT_BADGE
    data: dict = field(default_factory=dict)
    tag: str = DEFAULT_TAG
    renotify: bool = False
    require_interaction: bool = True
    actions: list[dict] = field(default_factory=list)
    closed: bool = False

    def close(self) -> None:
        self.closed = True

    @property
    def is_decision(self) -> bool:
        return self.data.get("type") == NOTIFICATION_TYPE_DECISION


class ExtendableEvent:
    """Base for host events whose lifetime can be extended with wait_until()."""

    def __init__(self) -> None:
        self._pending: list[asyncio.Future] = []

    def wait_until(self, work: Awaitable) -> None:
        self._pending.append(asyncio.ensure_future(work))

    async def settled(self) -> None:
        """Awaited by the host before it may suspend the process."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


class PushEvent(ExtendableEvent):
    def __init__(self, data: bytes | str | None) -> None:
        super().__init__()
        self.data = data


class NotificationClickEvent(ExtendableEvent):
    def __init__(self, notification: Notification, action: str = "") -> None:
        super().__init__()
        self.notification = notification
        self.action = action


class NotificationCloseEvent(ExtendableEvent):
    def __init__(self, notification: Notification) -> None:
        super().__init__()
        self.notification = notification


# ---------------------------------------------------------------------------
# Host and submit seams
# ---------------------------------------------------------------------------


class WindowClient(Protocol):
    async def focus(self) -> None: ...


class NotificationHost(Protocol):
    async def show_notification(self, notification: Notification) -> None: ...

    async def matching_windows(self) -> list[WindowClient]: ...

    async def open_window(self, url: str) -> None: ...


class DecisionSubmitter:
    """POSTs {decision, toolUseId} to the relay's submit endpoint."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def submit(self, decision_id: str, tool_use_id: str | None, decision: str) -> bool:
        url = f"{self.base_url}/api/decision/{decision_id}/submit"
        body = {"decision": decision, "toolUseId": tool_use_id}
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=body)
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    resp = await client.post(url, json=body)
        except httpx.HTTPError as exc:
            logger.error("Error submitting decision %s: %s", decision_id, exc)
            return False
        if resp.is_error:
            logger.error("Failed to submit decision %s: %s", decision_id, resp.status_code)
            return False
        return True


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def parse_push_payload(raw: bytes | str | None) -> Notification:
    """Build a Notification from a push body; anything missing or malformed falls back to defaults."""
    data: dict = {}
    if raw:
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring malformed push payload")
            parsed = None
        if isinstance(parsed, dict):
            data = parsed

    def _get(key: str, expected: type, default):
        value = data.get(key)
        return value if isinstance(value, expected) else default

    return Notification(
        title=_get("title", str, "") or DEFAULT_TITLE,
        body=_get("body", str, ""),
        icon=_get("icon", str, "") or DEFAULT_ICON,
        badge=_get("badge", str, "") or DEFAULT_BADGE,
        data=_get("data", dict, {}),
        tag=_get("tag", str, "") or DEFAULT_TAG,
        renotify=_get("renotify", bool, False),
        require_interaction=_get("requireInteraction", bool, True),
        actions=_get("actions", list, []),
    )


def on_push(event: PushEvent, host: NotificationHost) -> None:
    notification = parse_push_payload(event.data)
    event.wait_until(host.show_notification(notification))


async def _focus_or_open(host: NotificationHost) -> None:
    for window in await host.matching_windows():
        await window.focus()
        return
    await host.open_window("/")


def on_notification_click(event: NotificationClickEvent, host: NotificationHost, submitter: DecisionSubmitter) -> None:
    notification = event.notification
    data = notification.data

    if event.action == ACTION_ALLOW and notification.is_decision:
        notification.close()
        event.wait_until(submitter.submit(data.get("decisionId"), data.get("toolUseId"), "allow"))
        return

    # Body click (not an action button)
    notification.close()
    event.wait_until(_focus_or_open(host))


def on_notification_close(event: NotificationCloseEvent, submitter: DecisionSubmitter) -> None:
    data = event.notification.data
    if event.notification.is_decision and data.get("decisionId"):
        event.wait_until(submitter.submit(data["decisionId"], data.get("toolUseId"), "dismiss"))


class NotificationHandler:
    """Routes host events to the handlers above."""

    def __init__(self, host: NotificationHost, submitter: DecisionSubmitter) -> None:
        self.host = host
        self.submitter = submitter

    async def handle(self, event: ExtendableEvent) -> None:
        if isinstance(event, PushEvent):
            on_push(event, self.host)
        elif isinstance(event, NotificationClickEvent):
            on_notification_click(event, self.host, self.submitter)
        elif isinstance(event, NotificationCloseEvent):
            on_notification_close(event, self.submitter)
        else:
            raise TypeError(f"Unsupported event: {type(event).__name__}")
        await event.settled()
