# apps/communities/constants.py

from enum import Enum

from apps.docstore.config import collection_id


def community_collection() -> str:
    return collection_id("communities", "community")


def topic_collection() -> str:
    return collection_id("communities", "topic")


def member_collection() -> str:
    return collection_id("communities", "member")


def discussion_collection() -> str:
    return collection_id("communities", "discussion")


def ping_collection() -> str:
    return collection_id("communities", "ping")


# MEMBER ROLES ---------------------------------------------------------------------------------
MEMBER = 'Member'
ADMIN = 'Admin'
MEMBER_ROLE_CHOICES = [
    (MEMBER, 'Member'),
    (ADMIN, 'Admin'),
]


# PING SCOPES ----------------------------------------------------------------------------------
class PingScope(str, Enum):
    """Which ping records of a member get summed."""
    TOPIC = "topic"
    COMMUNITY = "community"
    USER = "user"

    @property
    def field(self):
        # USER scope needs no extra filter beyond the member id
        return {PingScope.TOPIC: "topic_id", PingScope.COMMUNITY: "community_id"}.get(self)


# DISCUSSION TYPES -----------------------------------------------------------------------------
GENERAL = 'general'
QUESTION = 'question'
SHOWCASE = 'showcase'
DISCUSSION_TYPE_CHOICES = [
    (GENERAL, 'General'),
    (QUESTION, 'Question'),
    (SHOWCASE, 'Showcase'),
]
