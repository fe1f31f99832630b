"""
Module: bot/main.py

Entry point for the notification relay bot.
Initializes logging, starts the poller once connected, and defines event handlers
for bot lifecycle, disconnection, reconnection, and unhandled errors.
"""
import asyncio
import traceback

from config import DISCORD_BOT_TOKEN, LOG_FILE
from utils import log_message, log_loop_exception, set_log_file
from bot_context import bot, db, poller

@bot.event
async def on_ready():
    """
    Handler for the bot's ready event.

    Logs bot identity, installs the asyncio catch-all, and starts polling.
    """
    log_message(f'Logged in as {bot.user.name} ({bot.user.id})', "info")
    asyncio.get_running_loop().set_exception_handler(log_loop_exception)
    poller.start()

@bot.event
async def on_error(event_method, *args, **kwargs):
    """
    Catch-all handler for unhandled errors in any event.

    Logs the event method name and full traceback when an error occurs.
    """
    tb = traceback.format_exc()
    log_message(f"Unhandled error in event {event_method}: {tb}", "error")

@bot.event
async def on_disconnect():
    """
    Handler for bot disconnection.

    Pauses polling. Pending countdowns and giveaways keep running and
    the database stays open for them to mark their rows.
    """
    log_message("Bot disconnected from Discord, pausing polling.", "warning")
    await poller.pause()

@bot.event
async def on_resumed():
    """
    Handler for bot reconnection after a disconnect.

    Checks the database connection and restarts polling.
    """
    log_message("Bot resumed connection, restarting polling.", "info")
    db.ensure_connection()
    poller.start()

# Bot startup
set_log_file(LOG_FILE)
log_message("Bot is starting up...")
bot.run(DISCORD_BOT_TOKEN)
