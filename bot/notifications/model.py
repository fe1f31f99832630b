"""
Module: bot/notifications/model.py

Provides NotificationType, the closed set of notification kinds, and
Notification, a typed view over one row of the notifications table.
"""
from enum import Enum
from utils import parse_timestamp

NOTIFICATION_COLUMNS = (
    'id', 'type', 'image_url', 'description', 'countdown_end',
    'giveaway_end', 'guild_id', 'max_winners', 'sent'
)


class NotificationType(Enum):
    IMAGE = 'image'
    COUNTDOWN = 'countdown'
    GIVEAWAY = 'giveaway'
    MESSAGE_ALL = 'messageAll'
    EMBED = 'embed'
    UNIQUE_TRACKER = 'uniqueTracker'

    @classmethod
    def parse(cls, raw):
        """Return the member for a stored type string, or None if unknown."""
        try:
            return cls(raw)
        except ValueError:
            return None


class Notification:
    """
    One pending notification.

    Attributes:
        notif_id (int): Row id.
        type_name (str): The type string exactly as stored.
        kind (NotificationType or None): Parsed type, None when unrecognized.
        image_url (str or None): Image to attach for `image` rows.
        description (str): Message text.
        countdown_end (datetime or None): UTC end of a countdown.
        giveaway_end (datetime or None): UTC end of a giveaway.
        guild_id (int or None): Guild for giveaway and mass-DM rows.
        max_winners (int or None): Winners to draw; below one means one.
        sent (bool): Completion flag.
    """
    def __init__(
        self,
        notif_id,
        type_name,
        image_url=None,
        description=None,
        countdown_end=None,
        giveaway_end=None,
        guild_id=None,
        max_winners=None,
        sent=False
    ):
        self.notif_id = notif_id
        self.type_name = type_name
        self.kind = NotificationType.parse(type_name)
        self.image_url = image_url
        self.description = description or ''
        self.countdown_end = parse_timestamp(countdown_end)
        self.giveaway_end = parse_timestamp(giveaway_end)
        self.guild_id = int(guild_id) if guild_id is not None else None
        self.max_winners = max_winners
        self.sent = bool(sent)

    @classmethod
    def from_row(cls, row):
        """
        Build a Notification from a tuple ordered like NOTIFICATION_COLUMNS.
        """
        (nid, ntype, image_url, description, countdown_end,
         giveaway_end, guild_id, max_winners, sent) = row
        return cls(
            notif_id=nid,
            type_name=ntype,
            image_url=image_url,
            description=description,
            countdown_end=countdown_end,
            giveaway_end=giveaway_end,
            guild_id=guild_id,
            max_winners=max_winners,
            sent=sent
        )

    @property
    def winner_count(self):
        # NULL, zero and negative all mean a single winner
        if self.max_winners is None or self.max_winners < 1:
            return 1
        return self.max_winners

    def __repr__(self):
        return f"<Notification id={self.notif_id} type={self.type_name!r} sent={self.sent}>"
