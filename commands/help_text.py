"""Static help text utility."""
from __future__ import annotations

BASIC_LINES = [
    "/help - Show this help message",
    "/status - Check bot status",
    "/time - Get current time",
    "/weather [city] - Get weather information",
    "/quote - Get a random inspirational quote",
    "/joke - Get a random joke",
    "/calc [expression] - Calculate math expressions",
    "/translate [text] - Translate text to English",
    "/ping - Check bot response time",
]

ADMIN_LINES = [
    "/admin - Access admin panel",
    "/stats - View bot statistics",
    "/auto-reply [trigger] [reply] - Add auto-reply",
    "/schedule [time] [message] - Schedule a message",
    "/broadcast [message] - Broadcast message to all users",
    "/block [number] - Block a user",
    "/unblock [number] - Unblock a user",
]

FEATURE_LINES = [
    "• Auto-reply system",
    "• File handling (images, documents, audio, video)",
    "• Scheduled messages",
    "• Statistics tracking",
]


def build_help_text(bot_name: str = "Pipit") -> str:
    """Return the full /help text."""
    return "\n".join(
        [f"🤖 {bot_name} Commands", "", "Basic Commands:", *BASIC_LINES,
         "", "Admin Commands:", *ADMIN_LINES,
         "", "Features:", *FEATURE_LINES]
    )


def build_command_summary() -> str:
    """Shorter summary sent when someone asks for help in plain text."""
    return "\n".join(["🤖 Bot Commands:", "", *BASIC_LINES, "", "Admin Commands:", *ADMIN_LINES])


def build_admin_text(name: str, panel_url: str | None = None) -> str:
    lines = ["👑 Admin Panel", "", f"Welcome, {name}!", "", "Admin Commands:", *ADMIN_LINES[1:]]
    if panel_url:
        lines += ["", "Web Admin Panel:", f"Access the full admin panel at: {panel_url}"]
    return "\n".join(lines)
