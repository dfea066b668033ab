"""
Chat commands served by the messaging client.

Commands:
- /start            welcome + command list
- /help             command list
- /summary [DATE]   daily summary (today, or YYYY-MM-DD), alias /ozet
"""

import logging
from datetime import date
from typing import List

from .agents import OpsAction, OpsAgent, OpsInput
from .context import StudioContext
from .integrations.telegram import ChatId, MessagingClient
from .storage import utcnow

logger = logging.getLogger(__name__)

SUMMARY_ERROR_REPLY = "Sorry, something went wrong while generating the summary. Please try again."

WELCOME_TEXT = (
    "👋 Hi! I'm the Studio Ops bot.\n\n"
    "Commands:\n"
    "/help - Help menu\n"
    "/summary or /ozet - Daily summary\n"
    "/summary [date] - Summary for a specific date (e.g. /summary 2024-01-15)"
)

HELP_TEXT = (
    "📋 Available commands:\n\n"
    "/start - Start the bot\n"
    "/help - Show this help message\n"
    "/summary or /ozet - Today's summary\n"
    "/summary [date] - Summary for a specific date\n\n"
    "Example: /summary 2024-01-15"
)


def parse_summary_date(args: List[str]) -> date:
    """First argument as YYYY-MM-DD, or today. Raises ValueError on a bad date."""
    if not args:
        return utcnow().date()
    return date.fromisoformat(args[0])


def register_chat_commands(messenger: MessagingClient, ctx: StudioContext) -> None:
    """Bind the studio commands to `messenger`'s router."""
    ops = OpsAgent(ctx.ledger)

    def start(chat_id: ChatId, args: List[str]) -> None:
        messenger.send_message(chat_id, WELCOME_TEXT)

    def help_(chat_id: ChatId, args: List[str]) -> None:
        messenger.send_message(chat_id, HELP_TEXT)

    def summary(chat_id: ChatId, args: List[str]) -> None:
        try:
            day = parse_summary_date(args)
            result = ops.run(OpsInput(action=OpsAction.DAILY_SUMMARY, day=day))
        except Exception as e:
            logger.error(f"[Chat] Error generating daily summary: {e}")
            messenger.send_message(chat_id, SUMMARY_ERROR_REPLY)
            return
        messenger.send_message_with_markdown(chat_id, result.formatted_summary or result.summary)

    messenger.on_command("start", start)
    messenger.on_command("help", help_)
    messenger.on_command("summary", summary)
    messenger.on_command("ozet", summary)
    logger.info(f"[Chat] Registered commands: {', '.join(messenger.router.commands())}")
