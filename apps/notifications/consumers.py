# apps/notifications/consumers.py

import logging
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .services import realtime_group

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncJsonWebsocketConsumer):

    async def connect(self):
        """
        Private stream of the connected principal's notifications.
        The principal is the authenticated user's pk.
        """
        user = self.scope.get("user")

        if not user or user.is_anonymous:
            logger.warning("[WS-Notif] Anonymous user attempted to connect")
            await self.close()
            return

        self.user = user
        self.group_name = realtime_group(str(user.pk))

        try:
            await self.channel_layer.group_add(self.group_name, self.channel_name)
        except Exception as e:
            logger.error("[WS-Notif] Failed to join group %s: %s", self.group_name, e)

        await self.accept()
        await self.send_json({"type": "connected", "status": "ok"})
        logger.info("[WS-Notif] User %s connected", user.pk)

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            try:
                await self.channel_layer.group_discard(self.group_name, self.channel_name)
            except Exception as e:
                logger.error("[WS-Notif] Failed group_discard(%s): %s", self.group_name, e)

        logger.info("[WS-Notif] User %s disconnected", getattr(getattr(self, "user", None), "pk", None))

    async def receive_json(self, content, **kwargs):
        msg_type = content.get("type")

        if msg_type == "ping":
            await self.send_json({"type": "pong"})
        elif msg_type == "pong":
            pass
        else:
            logger.debug("[WS-Notif] Unknown message type received: %s", msg_type)

    # ------------------------------------------------------------------
    # Server → Client
    # ------------------------------------------------------------------
    async def send_notification(self, event):
        """Handler for group_send(type="send_notification")."""
        await self.send_json({"type": "notification", "payload": event.get("payload", {})})
