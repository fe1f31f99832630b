import os
from dotenv import load_dotenv
from utils import parse_poll_interval

load_dotenv()

DISCORD_BOT_TOKEN = os.getenv('DISCORD_BOT_TOKEN')
RAW_CHANNEL_ID = os.getenv('DISCORD_CHANNEL_ID', '').strip()

if not DISCORD_BOT_TOKEN or not RAW_CHANNEL_ID.isdigit():
    raise EnvironmentError("Missing DISCORD_BOT_TOKEN or DISCORD_CHANNEL_ID in .env file")

DISCORD_CHANNEL_ID = int(RAW_CHANNEL_ID)

# SQLite database file holding the notifications table
DB_NAME = os.getenv('DB_NAME', 'notifications.db')

# Bare numbers are milliseconds, otherwise an interval string like "5s"
POLLING_INTERVAL = parse_poll_interval(os.getenv('POLLING_INTERVAL', '5000'))

LOG_FILE = os.getenv('LOG_FILE', 'bot.log')
