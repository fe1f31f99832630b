"""
Module: bot/notifications/handlers.py

Delivery logic for each NotificationType. Every handler is a coroutine taking
(poller, notification). Handlers mark the row sent through the poller once
delivery succeeds and leave it untouched on failure so the next poll retries.
"""
import asyncio
import random
from datetime import datetime, UTC

import nextcord

from notifications.model import NotificationType
from utils import log_message

EMBED_TITLE = 'Important Announcement'
EMBED_COLOR = 0x0099FF


def seconds_until(when, now=None):
    """
    Seconds from now until `when`; a missing time counts as already past.
    """
    if when is None:
        return 0.0
    now = now or datetime.now(UTC)
    return (when - now).total_seconds()


def draw_winners(members, count, rng=random):
    """
    Draw up to `count` distinct members uniformly at random by repeated removal.
    Returns fewer winners when there are not enough members.
    """
    pool = list(members)
    winners = []
    for _ in range(min(max(count, 0), len(pool))):
        winners.append(pool.pop(rng.randrange(len(pool))))
    return winners


def format_giveaway_result(description, winners):
    if not winners:
        return f"{description} - Giveaway has ended! No eligible members to pick from."
    names = ', '.join(member.name for member in winners)
    suffix = 's' if len(winners) > 1 else ''
    return f"{description} - Giveaway has ended! Winner{suffix}: {names}"


async def fetch_human_members(poller, guild_id):
    """
    Fetch every member of a guild, excluding bots.
    """
    guild = await poller.bot.fetch_guild(guild_id)
    members = []
    async for member in guild.fetch_members(limit=None):
        if not member.bot:
            members.append(member)
    return members


async def send_image_notification(poller, notification):
    channel = await poller.fetch_channel(poller.channel_id)
    if channel is None:
        return
    payload = {"content": notification.description or None}
    if notification.image_url:
        embed = nextcord.Embed()
        embed.set_image(url=notification.image_url)
        payload["embed"] = embed
    elif notification.description:
        log_message(f"Image notification {notification.notif_id} has no image_url, sending text only", "warning")
    else:
        log_message(f"Image notification {notification.notif_id} has neither image_url nor description", "error")
        return
    try:
        await channel.send(**payload)
    except Exception as e:
        log_message(f"Error sending image notification {notification.notif_id}: {e}", "error")
        return
    log_message(f"Sent image notification {notification.notif_id}", "info")
    poller.mark_as_sent(notification.notif_id)


async def send_rich_embed_notification(poller, notification):
    channel = await poller.fetch_channel(poller.channel_id)
    if channel is None:
        return
    embed = nextcord.Embed(
        title=EMBED_TITLE,
        description=notification.description,
        color=EMBED_COLOR,
        timestamp=datetime.now(UTC)
    )
    try:
        await channel.send(embed=embed)
    except Exception as e:
        log_message(f"Error sending embed notification {notification.notif_id}: {e}", "error")
        return
    log_message(f"Sent embed notification {notification.notif_id}", "info")
    poller.mark_as_sent(notification.notif_id)


async def schedule_countdown(poller, notification):
    """
    Mark an expired countdown sent without announcing it, otherwise
    schedule the announcement for countdown_end. A countdown whose timer
    was cancelled by stop() is announced late instead of dropped.
    """
    delay = seconds_until(notification.countdown_end)
    if delay <= 0 and not poller.was_interrupted(notification.notif_id):
        poller.mark_as_sent(notification.notif_id)
        return
    poller.schedule(notification, max(delay, 0), finish_countdown)


async def finish_countdown(poller, notification):
    channel = await poller.fetch_channel(poller.channel_id)
    if channel is None:
        return
    try:
        await channel.send(f"{notification.description} - Countdown has ended!")
    except Exception as e:
        log_message(f"Error sending countdown notification {notification.notif_id}: {e}", "error")
        return
    log_message(f"Countdown {notification.notif_id} ended", "info")
    poller.mark_as_sent(notification.notif_id)


async def schedule_giveaway(poller, notification):
    """
    Same expiry rule as countdowns; the draw happens when giveaway_end arrives.
    """
    delay = seconds_until(notification.giveaway_end)
    if delay <= 0 and not poller.was_interrupted(notification.notif_id):
        poller.mark_as_sent(notification.notif_id)
        return
    poller.schedule(notification, max(delay, 0), finish_giveaway)


async def finish_giveaway(poller, notification):
    """
    Draw winners among the guild's human members and announce them.
    """
    try:
        members = await fetch_human_members(poller, notification.guild_id)
    except Exception as e:
        log_message(f"Error during giveaway {notification.notif_id}: {e}", "error")
        return

    winners = draw_winners(members, notification.winner_count, poller.rng)
    channel = await poller.fetch_channel(poller.channel_id)
    if channel is None:
        return
    try:
        await channel.send(format_giveaway_result(notification.description, winners))
    except Exception as e:
        log_message(f"Error sending giveaway notification {notification.notif_id}: {e}", "error")
        return
    log_message(
        f"Giveaway {notification.notif_id} ended with {len(winners)} winner(s) from {len(members)} member(s)",
        "info"
    )
    poller.mark_as_sent(notification.notif_id)


async def _send_direct_message(member, message):
    try:
        await member.send(message)
        return True
    except Exception as e:
        log_message(f"Could not send DM to {member.name} ({member.id}): {e}", "error")
        return False


async def message_all_members(poller, notification):
    """
    DM every human member of the guild. The row is marked sent once every
    DM has been attempted, whatever the individual outcomes.
    """
    try:
        members = await fetch_human_members(poller, notification.guild_id)
    except Exception as e:
        log_message(f"Error messaging all users in guild {notification.guild_id}: {e}", "error")
        return

    results = await asyncio.gather(
        *(_send_direct_message(member, notification.description) for member in members)
    )
    log_message(
        f"Notification {notification.notif_id}: delivered {sum(results)}/{len(results)} direct messages",
        "info"
    )
    poller.mark_as_sent(notification.notif_id)


async def track_unique_kills(poller, notification):
    # Placeholder: logs only and never completes the row.
    log_message(
        f"Tracking unique kills for guild {notification.guild_id}: {notification.description}",
        "info"
    )


HANDLERS = {
    NotificationType.IMAGE: send_image_notification,
    NotificationType.COUNTDOWN: schedule_countdown,
    NotificationType.GIVEAWAY: schedule_giveaway,
    NotificationType.MESSAGE_ALL: message_all_members,
    NotificationType.EMBED: send_rich_embed_notification,
    NotificationType.UNIQUE_TRACKER: track_unique_kills,
}

_missing = set(NotificationType) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for notification types: {sorted(t.value for t in _missing)}")
