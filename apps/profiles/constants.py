# apps/profiles/constants.py

from apps.docstore.config import collection_id


def creator_collection() -> str:
    return collection_id("users", "creator")


def support_collection() -> str:
    return collection_id("users", "support")


# Denormalized counters on the creator document --------------------------------------------------
CREATIONS_COUNT = 'creations_count'
PROJECTS_COUNT = 'projects_count'
SUPPORTING_COUNT = 'supporting_count'
USER_COUNTERS = (CREATIONS_COUNT, PROJECTS_COUNT, SUPPORTING_COUNT)
