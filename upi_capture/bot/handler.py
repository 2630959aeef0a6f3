import asyncio

from loguru import logger
from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from upi_capture.config import get_settings
from upi_capture.deps import dispatcher, live, repo
from upi_capture.models.schemas import PaymentRecord
from upi_capture.notifier import RESUME_PREFIX, format_inr, parse_resume_callback

settings = get_settings()


def _pending_summary(records: list[PaymentRecord]) -> str:
    """Build a summary of payments waiting to be split."""
    if not records:
        return "No pending payments! You're all clear."

    lines = ["*Pending payments:*\n"]
    for i, record in enumerate(records, start=1):
        line = f"{i}. {format_inr(record.amount)}"
        if record.payee:
            line += f" to *{record.payee}*"
        line += f" ({record.detected_at:%d %b %H:%M})"
        lines.append(line)

    total = sum(record.amount for record in records)
    lines.append(f"\n*Total: {format_inr(total)}*")
    return "\n".join(lines)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(
        "Hi! I watch for UPI payment SMS and keep them until you split them.\n\n"
        "Forward me a bank SMS and I'll pick up the amount and payee.\n"
        "Use /pending to see what's waiting and /clear to empty the list."
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await start_command(update, context)


async def pending_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /pending command."""
    records = await asyncio.to_thread(repo.list)
    await update.message.reply_text(_pending_summary(records), parse_mode="Markdown")


async def clear_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await asyncio.to_thread(repo.clear)
    await update.message.reply_text("Pending payments cleared.")


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Treat a forwarded SMS as if the phone had just received it."""
    text = update.message.text
    logger.info("Forwarded SMS from chat {}", update.effective_chat.id)

    route = await asyncio.to_thread(dispatcher.receive, [text], address="telegram")
    if route == "live":
        await update.message.reply_text("Sent to the open app.")
    elif route in ("alerted", "stored"):
        await update.message.reply_text("Payment saved. Use /pending to see it.")
    elif route == "store_failed":
        await update.message.reply_text("I found a payment but couldn't save it.")
    else:
        await update.message.reply_text("That doesn't look like a UPI payment.")


async def handle_resume(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle a tap on the "Add as shared expense" alert button."""
    query = update.callback_query
    await query.answer()

    payload = parse_resume_callback(query.data)
    if payload is None:
        await query.edit_message_text("This alert has expired.")
        return

    label = format_inr(payload.amount)
    if payload.payee:
        label += f" to {payload.payee}"

    if live.resume(payload):
        await query.edit_message_text(f"Opening {label} in the app.")
    else:
        await query.edit_message_text(
            f"{label} is waiting in your pending payments. Open the app to split it."
        )


def build_bot_app() -> Application:
    """Build and return the Telegram bot application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    # Command handlers
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("pending", pending_command))
    app.add_handler(CommandHandler("clear", clear_command))

    # Alert button taps
    app.add_handler(CallbackQueryHandler(handle_resume, pattern=f"^{RESUME_PREFIX}"))

    # Forwarded SMS text
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    return app
