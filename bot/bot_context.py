"""
Module: bot/bot_context.py

Sets up the Discord bot, database, and notification poller shared by the entry point.
"""
import nextcord
from nextcord.ext import commands

from database import Database
from notifications.poller import NotificationPoller
from config import DB_NAME, DISCORD_CHANNEL_ID, POLLING_INTERVAL

# Members intent is needed to list guild members for giveaways and mass DMs
intents = nextcord.Intents.default()
intents.members = True

db = Database(DB_NAME)
bot = commands.Bot(intents=intents)
poller = NotificationPoller(bot, db, DISCORD_CHANNEL_ID, POLLING_INTERVAL)
