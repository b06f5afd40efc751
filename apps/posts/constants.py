# apps/posts/constants.py

import re

from apps.docstore.config import collection_id


def creation_collection() -> str:
    return collection_id("posts", "creation")


def project_collection() -> str:
    return collection_id("posts", "project")


# Tags and links arrive as "a, b c" or as lists
LIST_SPLIT_RE = re.compile(r"[\s,]+")
