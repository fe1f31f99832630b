"""
Module: bot/notifications/poller.py

Defines NotificationPoller: reads unsent notification rows on a fixed interval,
dispatches each to its handler, and owns the registry of deferred tasks
(countdowns and giveaways waiting for their end time).
"""
import asyncio
import random
from datetime import timedelta

from nextcord.ext import tasks

from notifications.handlers import HANDLERS
from notifications.model import Notification, NOTIFICATION_COLUMNS
from utils import log_message

SELECT_PENDING = (
    f"SELECT {', '.join(NOTIFICATION_COLUMNS)} FROM notifications "
    "WHERE sent = FALSE ORDER BY id"
)
MARK_SENT = 'UPDATE notifications SET sent = TRUE WHERE id = ?'


class NotificationPoller:
    """
    Polls the notifications table and routes rows to handlers.

    Responsibilities:
      - Fetch every unsent row once per poll cycle.
      - Dispatch rows by type; unknown types are logged and left alone.
      - Keep one deferred task per row id so a pending countdown or giveaway
        is never scheduled twice.
      - Mark rows sent once their handler completes.

    Attributes:
      bot: The nextcord client used for Discord operations.
      db: Database wrapper instance.
      channel_id (int): Channel receiving announcements.
      interval (timedelta): Poll period.
      tasks (dict): Mapping of notification IDs to pending asyncio.Task objects.
      interrupted (set): IDs whose deferred task stop() cancelled before it fired.
      rng: Random source for giveaway draws.
    """
    def __init__(self, bot, db, channel_id, interval=timedelta(seconds=5), rng=None):
        """
        Initialize the NotificationPoller.

        Args:
            bot: nextcord client to use for Discord operations.
            db: Database instance holding the notifications table.
            channel_id (int): Target channel for channel messages.
            interval (timedelta): Time between poll cycles.
            rng: Optional random.Random for giveaway draws.
        """
        self.bot = bot
        self.db = db
        self.channel_id = channel_id
        self.interval = interval
        self.rng = rng or random.Random()
        self.tasks = {}
        self.interrupted = set()
        self._loop = None

    def start(self):
        """
        Start the periodic poll loop. Safe to call again after pause() or stop().
        """
        if self._loop is None:
            self._loop = tasks.loop(seconds=self.interval.total_seconds())(self.poll_once)
        if not self._loop.is_running():
            log_message(f"Polling notifications every {self.interval.total_seconds():g}s", "info")
            self._loop.start()

    async def pause(self):
        """
        Stop polling but leave deferred tasks running; their sends go
        through REST and do not need the gateway.
        """
        if self._loop is not None and self._loop.is_running():
            self._loop.cancel()

    async def stop(self):
        """
        Stop polling and cancel every deferred task. Cancelled rows are
        remembered so the next poll delivers them even if their end time
        has passed in the meantime.
        """
        await self.pause()
        for nid, task in list(self.tasks.items()):
            task.cancel()
            self.interrupted.add(nid)
        self.tasks.clear()

    def was_interrupted(self, notif_id):
        return notif_id in self.interrupted

    async def poll_once(self):
        """
        Run one poll cycle. A query failure is logged and the cycle skipped.
        """
        try:
            rows = self.db.fetchall(SELECT_PENDING)
        except Exception as e:
            log_message(f"Database query error: {e}", "error")
            return

        for row in rows:
            try:
                notification = Notification.from_row(row)
            except (TypeError, ValueError) as e:
                log_message(f"Skipping malformed notification row {row[0]!r}: {e}", "error")
                continue
            # Shielded so pausing mid-cycle cannot cut a mass DM in half
            await asyncio.shield(self.dispatch(notification))

    async def dispatch(self, notification):
        """
        Route one notification to its handler.
        """
        if notification.notif_id in self.tasks:
            log_message(f"Notification {notification.notif_id} already scheduled, skipping", "debug")
            return

        handler = HANDLERS.get(notification.kind)
        if handler is None:
            log_message(f"Unknown notification type: {notification.type_name}", "warning")
            return

        try:
            await handler(self, notification)
        except Exception as e:
            log_message(
                f"Error handling {notification.type_name} notification {notification.notif_id}: {e}",
                "error"
            )

    def schedule(self, notification, delay, callback):
        """
        Run `callback(self, notification)` after `delay` seconds, keyed by row id.

        Returns the asyncio.Task, or the existing one if the row is already pending.
        """
        nid = notification.notif_id
        existing = self.tasks.get(nid)
        if existing is not None and not existing.done():
            return existing

        task = asyncio.create_task(self._run_deferred(notification, delay, callback))
        self.tasks[nid] = task
        self.interrupted.discard(nid)
        task.add_done_callback(lambda t, nid=nid: self._forget(nid, t))
        log_message(
            f"Scheduled {notification.type_name} notification {nid} in {delay:.0f}s",
            "info"
        )
        return task

    async def _run_deferred(self, notification, delay, callback):
        try:
            await asyncio.sleep(delay)
            await callback(self, notification)
        except asyncio.CancelledError:
            log_message(f"Cancelled task {notification.notif_id}", "warning")
            raise
        except Exception as e:
            log_message(f"Error in deferred notification {notification.notif_id}: {e}", "error")

    def _forget(self, notif_id, task):
        if self.tasks.get(notif_id) is task:
            del self.tasks[notif_id]

    def mark_as_sent(self, notif_id):
        """
        Flag a notification as sent. Idempotent; failures are logged and
        leave the row for the next poll.

        Returns True when the update committed.
        """
        try:
            self.db.execute(MARK_SENT, (notif_id,))
        except Exception as e:
            log_message(f"Error updating notification status for {notif_id}: {e}", "error")
            return False
        log_message(f"Marked notification {notif_id} as sent", "debug")
        return True

    async def fetch_channel(self, channel_id):
        """
        Resolve a channel by ID, or log and return None.
        """
        try:
            return await self.bot.fetch_channel(channel_id)
        except Exception as e:
            log_message(f"Error fetching channel {channel_id}: {e}", "error")
            return None
