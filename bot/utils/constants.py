from __future__ import annotations

from dataclasses import dataclass

# Component and command identifiers. These are part of the persisted message
# components, so renaming one orphans every panel already posted.
TICKET_REASON_MENU_ID = "ticket_reason"
CLAIM_BUTTON_ID = "claim_ticket"
RESOLVE_BUTTON_ID = "resolve_ticket"
CLOSE_BUTTON_ID = "close_ticket"
ADMIN_MENU_ID = "admin_menu"
RESOLVE_MODAL_ID = "resolve_modal"
SEND_MESSAGE_MODAL_ID = "send_message_modal"
ADMIN_COMMAND_NAME = "admin"

RESOLUTION_INPUT_ID = "resolution_message"
USER_ID_INPUT_ID = "user_id"
MESSAGE_INPUT_ID = "message_content"

ADMIN_SHOW_LOGS = "show_logs"
ADMIN_SHOW_BOT_INFO = "show_bot_info"
ADMIN_SEND_MESSAGE = "send_message"
ADMIN_SHOW_TICKET_MESSAGES = "show_ticket_messages"

UNKNOWN_REASON_LABEL = "Unknown"


@dataclass(frozen=True, slots=True)
class TicketReason:
    key: str
    label: str
    summary: str
    guidance: str


TICKET_REASONS: tuple[TicketReason, ...] = (
    TicketReason(
        key="report",
        label="Report a Player",
        summary="Report rule-breaking or toxic behavior.",
        guidance="Use this option to report rule-breaking or toxic behavior. "
        "Provide as much detail as possible.",
    ),
    TicketReason(
        key="giveaway",
        label="Won a Giveaway",
        summary="Claim a prize from a giveaway.",
        guidance="Use this option to claim a prize from a giveaway. Include the giveaway details.",
    ),
    TicketReason(
        key="support",
        label="Get Support by Staff",
        summary="Get help from our support team.",
        guidance="Use this option to get help from our support team. Describe your issue in detail.",
    ),
)

_REASONS_BY_KEY = {reason.key: reason for reason in TICKET_REASONS}


def reason_label(key: str) -> str:
    reason = _REASONS_BY_KEY.get(key)
    return reason.label if reason else UNKNOWN_REASON_LABEL


def reason_slug(key: str) -> str:
    return reason_label(key).replace(" ", "-").lower()


ADMIN_ACTIONS: tuple[tuple[str, str, str], ...] = (
    (ADMIN_SHOW_LOGS, "Show Logs", "Display the ticket logs."),
    (ADMIN_SHOW_BOT_INFO, "Show Bot Info", "Display basic bot information."),
    (ADMIN_SEND_MESSAGE, "Send Message to User", "Send a message to a specific user."),
    (ADMIN_SHOW_TICKET_MESSAGES, "Show Ticket Messages", "Display messages sent in ticket channels."),
)
