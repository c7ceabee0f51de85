"""
Agent hook plumbing: parse hook events, describe the tool call for a
notification, and render the hook's JSON answer.
"""

import json
import secrets
from pathlib import Path

from pydantic import BaseModel

HOOK_PERMISSION_REQUEST = "PermissionRequest"
HOOK_NOTIFICATION = "Notification"
NOTIFICATION_IDLE_PROMPT = "idle_prompt"

HOOK_MARKER = "claude-afk"


# ---------------------------------------------------------------------------
# Hook input
# ---------------------------------------------------------------------------


class GenericHookInput(BaseModel):
    hook_event_name: str


class NotificationInput(BaseModel):
    session_id: str
    message: str
    notification_type: str | None = None


class PermissionRequestInput(BaseModel):
    session_id: str
    tool_name: str
    tool_input: dict = {}
    tool_use_id: str | None = None
    cwd: str | None = None
    permission_mode: str | None = None

    def resolved_tool_use_id(self) -> str:
        """Some hook payloads omit the id; a random one still ties the decision together."""
        return self.tool_use_id or secrets.token_urlsafe(16)[:21]


# ---------------------------------------------------------------------------
# Notification text
# ---------------------------------------------------------------------------


def _truncate(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


def format_tool_notification(tool_name: str, tool_input: dict) -> tuple[str, str]:
    """Return (title, message) describing a tool call."""
    if tool_name == "Bash" and isinstance(tool_input.get("command"), str):
        command = tool_input["command"]
        description = tool_input.get("description")
        message = f"{description}\n\n{command}" if description else command
        return "Bash Command", message

    if tool_name == "Write" and isinstance(tool_input.get("file_path"), str) and "content" in tool_input:
        preview = _truncate(str(tool_input["content"]), 100)
        return "Write File", f"{tool_input['file_path']}\n\n{preview}"

    if tool_name == "Edit" and isinstance(tool_input.get("file_path"), str) and "old_string" in tool_input:
        old = _truncate(str(tool_input["old_string"]), 50)
        new = _truncate(str(tool_input.get("new_string", "")), 50)
        return "Edit File", f"{tool_input['file_path']}\n\n- {old}\n+ {new}"

    if tool_name == "Read" and isinstance(tool_input.get("file_path"), str):
        return "Read File", tool_input["file_path"]

    return f"Tool: {tool_name}", _truncate(json.dumps(tool_input), 200)


# ---------------------------------------------------------------------------
# Hook output
# ---------------------------------------------------------------------------


def allow_output() -> dict:
    """Answer that lets the agent run the tool without prompting in the terminal.

    A dismissal has no output at all: the hook exits quietly and the agent asks
    as usual.
    """
    return {
        "hookSpecificOutput": {
            "hookEventName": HOOK_PERMISSION_REQUEST,
            "decision": {"behavior": "allow"},
        }
    }


# ---------------------------------------------------------------------------
# Agent settings file
# ---------------------------------------------------------------------------


def settings_path() -> Path:
    return Path.home() / ".claude" / "settings.json"


def _entry_is_ours(entry: dict) -> bool:
    return any(HOOK_MARKER in str(h.get("command", "")) for h in entry.get("hooks", []) if isinstance(h, dict))


def install_hooks(settings: dict, command: str) -> dict:
    """Register `command` for PermissionRequest (all tools) and idle Notification hooks.

    Existing claude-afk entries are replaced; other hooks are left alone.
    """
    hooks = settings.setdefault("hooks", {})
    if not isinstance(hooks, dict):
        raise ValueError("'hooks' in settings is not an object")

    for event, matcher in ((HOOK_PERMISSION_REQUEST, "*"), (HOOK_NOTIFICATION, NOTIFICATION_IDLE_PROMPT)):
        entries = hooks.setdefault(event, [])
        if not isinstance(entries, list):
            raise ValueError(f"'{event}' hooks in settings is not an array")
        entries[:] = [e for e in entries if not (isinstance(e, dict) and _entry_is_ours(e))]
        entries.append({"matcher": matcher, "hooks": [{"type": "command", "command": command}]})
    return settings


def hooks_installed(settings: dict) -> bool:
    hooks = settings.get("hooks")
    if not isinstance(hooks, dict):
        return False

    def _has_ours(event: str) -> bool:
        entries = hooks.get(event)
        return isinstance(entries, list) and any(isinstance(e, dict) and _entry_is_ours(e) for e in entries)

    return _has_ours(HOOK_PERMISSION_REQUEST) and _has_ours(HOOK_NOTIFICATION)
