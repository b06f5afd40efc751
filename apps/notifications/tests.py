from types import SimpleNamespace
from unittest import mock

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from apps.delegation.tasks import execute_permission_function
from apps.docstore.client import store
from apps.docstore.testing import StoreFixturesMixin
from .constants import NotificationScope, NotificationType, notification_collection
from .consumers import NotificationConsumer
from .services import (
    count_unread,
    create_notification,
    get_notifications,
    mark_all_read,
    mark_read,
    notify,
    realtime_group,
)


class NotificationServiceTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.sender_id, self.sender_principal = self.make_creator("sender")
        _, self.receiver_id, self.receiver_principal = self.make_creator("receiver")

    def _notify(self, **kwargs):
        params = dict(
            receiver_principal=self.receiver_principal,
            sender_id=self.sender_id,
            notif_type=NotificationType.COMMENT,
            resource_id="creation-1",
            message="commented on your creation.",
        )
        params.update(kwargs)
        return notify(**params)

    def test_notification_is_unread_and_granted_to_receiver(self):
        notification = self._notify()
        self.assertFalse(notification["is_read"])
        self.assertEqual(
            store.get_read_principals(notification_collection(NotificationScope.USER), notification["id"]),
            [self.receiver_principal],
        )
        self.assertEqual(count_unread(self.receiver_principal), 1)

    def test_sender_is_compared_by_principal(self):
        """
        Test that self-notifications are suppressed even though the sender is an internal id.
        """
        self.assertIsNone(self._notify(receiver_principal=self.sender_principal))
        self.assertIsNone(self._notify(receiver_principal=None))

    def test_community_scope_is_separate(self):
        self._notify(scope=NotificationScope.COMMUNITY)
        self.assertEqual(count_unread(self.receiver_principal), 0)
        self.assertEqual(count_unread(self.receiver_principal, NotificationScope.COMMUNITY), 1)

    def test_grant_failure_keeps_the_notification(self):
        with mock.patch.object(execute_permission_function, "delay", side_effect=ConnectionError("down")):
            notification = self._notify()
        self.assertIsNotNone(store.get_document(notification_collection(NotificationScope.USER), notification["id"]))

    def test_mark_read_is_idempotent(self):
        notification = self._notify()
        first = mark_read(notification["id"])
        second = mark_read(notification["id"])
        self.assertTrue(first.get("changed"))
        self.assertFalse(second.get("changed"))
        self.assertTrue(second.get("notification")["is_read"])
        self.assertEqual(count_unread(self.receiver_principal), 0)

    def test_mark_all_read(self):
        for _ in range(3):
            self._notify()
        self.assertEqual(mark_all_read(self.receiver_principal), 3)
        self.assertEqual(mark_all_read(self.receiver_principal), 0)

    def test_newest_first_with_cursor(self):
        created = [self._notify(resource_id=f"r{i}") for i in range(5)]
        page = get_notifications(self.receiver_principal, limit=3)
        self.assertEqual([n["resource_id"] for n in page["documents"]], ["r4", "r3", "r2"])

        rest = get_notifications(self.receiver_principal, cursor=page["next_cursor"], limit=3)
        self.assertEqual([n["id"] for n in rest["documents"]], [created[1]["id"], created[0]["id"]])
        self.assertIsNone(rest["next_cursor"])

    def test_realtime_push_reaches_the_receiver_group(self):
        layer = get_channel_layer()
        channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(realtime_group(self.receiver_principal), channel)

        notification = create_notification(
            scope=NotificationScope.USER,
            receiver_principal=self.receiver_principal,
            sender_id=self.sender_id,
            notif_type=NotificationType.LIKE,
            resource_id="creation-1",
            message="liked your creation.",
        )
        event = async_to_sync(layer.receive)(channel)
        self.assertEqual(event["type"], "send_notification")
        self.assertEqual(event["payload"]["id"], notification["id"])


class NotificationApiTests(StoreFixturesMixin, TestCase):

    def setUp(self):
        _, self.sender_id, _ = self.make_creator("sender")
        self.receiver_user, _, self.receiver_principal = self.make_creator("receiver")
        self.other_user, _, _ = self.make_creator("other")
        self.notification = notify(
            receiver_principal=self.receiver_principal,
            sender_id=self.sender_id,
            notif_type=NotificationType.LIKE,
            resource_id="creation-1",
            message="liked your creation.",
        )
        self.client = APIClient()
        self.client.force_authenticate(user=self.receiver_user)

    def test_list_and_unread_count(self):
        response = self.client.get("/api/notifications/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["results"][0]["id"], self.notification["id"])
        self.assertEqual(self.client.get("/api/notifications/unread_count/").data["unread"], 1)

    def test_mark_read_twice(self):
        url = f"/api/notifications/{self.notification['id']}/mark_read/"
        self.assertEqual(self.client.patch(url).status_code, 200)
        response = self.client.patch(url)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["is_read"])

    def test_others_cannot_touch_it(self):
        self.client.force_authenticate(user=self.other_user)
        response = self.client.delete(f"/api/notifications/{self.notification['id']}/")
        self.assertEqual(response.status_code, 404)

    def test_receiver_deletes(self):
        response = self.client.delete(f"/api/notifications/{self.notification['id']}/")
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get("/api/notifications/unread_count/").data["unread"], 0)


class NotificationConsumerTests(SimpleTestCase):

    def _communicator(self, user):
        communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), "/ws/notifications/")
        communicator.scope["user"] = user
        return communicator

    async def test_connected_client_receives_pushes(self):
        communicator = self._communicator(SimpleNamespace(pk="ws-user", is_anonymous=False))
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        self.assertEqual(await communicator.receive_json_from(), {"type": "connected", "status": "ok"})

        await communicator.send_json_to({"type": "ping"})
        self.assertEqual(await communicator.receive_json_from(), {"type": "pong"})

        await get_channel_layer().group_send(
            realtime_group("ws-user"), {"type": "send_notification", "payload": {"id": "n1"}}
        )
        self.assertEqual(await communicator.receive_json_from(), {"type": "notification", "payload": {"id": "n1"}})
        await communicator.disconnect()

    async def test_anonymous_connection_is_closed(self):
        connected, _ = await self._communicator(AnonymousUser()).connect()
        self.assertFalse(connected)
