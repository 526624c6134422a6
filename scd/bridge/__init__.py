"""Cross-process bridge between scd and the user's interactive shell."""

from scd.bridge.shell import ShellBridge, receive_command, render_command, send_event

__all__ = ["ShellBridge", "receive_command", "render_command", "send_event"]
