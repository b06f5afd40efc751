# apps/docstore/testing.py
from contextlib import contextmanager
from unittest import mock

from django.contrib.auth import get_user_model

from apps.communities.constants import MEMBER, community_collection, member_collection, topic_collection
from apps.posts.constants import creation_collection, project_collection
from apps.profiles.constants import creator_collection
from .client import DocumentStore, store
from .exceptions import TransportError

User = get_user_model()


class StoreFixturesMixin:
    """Builders for the records most tests start from."""

    def make_creator(self, username):
        """A Django user plus its creator document. Returns (user, creator_id, principal)."""
        user = User.objects.create_user(username=username, password="pass1234")
        principal = str(user.pk)
        creator = store.create_document(
            creator_collection(),
            {"account_id": principal, "username": username, "creations_count": 0, "projects_count": 0},
            doc_id=f"creator-{username}",
        )
        return user, creator["id"], principal

    def make_creation(self, author_id, content="A new creation"):
        return store.create_document(creation_collection(), {"author_id": author_id, "content": content})

    def make_project(self, author_id, title="A new project"):
        return store.create_document(project_collection(), {"author_id": author_id, "title": title})

    def make_community(self, admins=(), name="Makers"):
        return store.create_document(community_collection(), {"name": name, "admins": list(admins)})

    def make_topic(self, community_id, name="General"):
        return store.create_document(topic_collection(), {"community_id": community_id, "name": name})

    def add_member(self, creator_id, community_id, role=MEMBER):
        return store.create_document(
            member_collection(), {"creator_id": creator_id, "community_id": community_id, "role": role}
        )


@contextmanager
def failing_deletes(*doc_ids):
    """Deleting any of `doc_ids` raises TransportError; every other delete goes through."""
    original = DocumentStore.delete_document
    blocked = set(doc_ids)

    def delete_document(self, collection, doc_id):
        if doc_id in blocked:
            raise TransportError(f"simulated outage deleting {doc_id}")
        return original(self, collection, doc_id)

    with mock.patch.object(DocumentStore, "delete_document", autospec=True, side_effect=delete_document):
        yield
