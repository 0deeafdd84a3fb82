"""
STOMP-over-WebSocket endpoint.

One consumer instance per connection.  Shared broker destinations map to
channel-layer groups so a broadcast reaches every subscriber on every
worker; the private ``/user/queue/erezept`` destination only ever
receives frames from this connection.  No business state lives here.
"""
from __future__ import annotations

import itertools
import json
import logging
import uuid
from typing import Any, Dict, Optional, Set

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.serializers.json import DjangoJSONEncoder

from erezept.exceptions import ErrorKind, NotFound, as_erezept_error, error_payload
from erezept.realtime import controller
from erezept.realtime.destinations import Destinations
from erezept.realtime.stomp import (
    Frame,
    StompProtocolError,
    negotiate_version,
    parse_frames,
    select_subprotocol,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
SERVER_NAME = "zeta-testfachdienst"


def _dumps(payload: Any) -> str:
    return json.dumps(payload, cls=DjangoJSONEncoder)


class StompConsumer(AsyncWebsocketConsumer):

    async def connect(self):
        self.destinations = Destinations()
        self.session_id = uuid.uuid4().hex
        self.stomp_version: Optional[str] = None
        self.subscriptions: Dict[str, str] = {}
        self._joined: Set[str] = set()
        self._message_ids = itertools.count()

        subprotocol = select_subprotocol(self.scope.get("subprotocols") or [])
        await self.accept(subprotocol=subprotocol)
        client = self.scope.get("client") or ("?", "?")
        logger.info("WS session established id=%s remote=%s:%s protocol=%s",
                    self.session_id, client[0], client[1], subprotocol)

    async def disconnect(self, close_code):
        for group in list(getattr(self, "_joined", ())):
            await self.channel_layer.group_discard(group, self.channel_name)
        logger.info("WS session closed id=%s code=%s", getattr(self, "session_id", None), close_code)

    async def receive(self, text_data=None, bytes_data=None):
        if text_data is None and bytes_data:
            try:
                text_data = bytes_data.decode("utf-8")
            except UnicodeDecodeError:
                await self.send_error("Binary frame is not valid UTF-8")
                return
        if not text_data:
            return
        try:
            frames = parse_frames(text_data)
        except StompProtocolError as exc:
            await self.send_error(str(exc))
            return

        for frame in frames:
            self.log_frame(frame)
            if self.stomp_version is None and frame.command not in ("CONNECT", "STOMP"):
                await self.send_error(f"Expected CONNECT frame, got {frame.command}")
                return
            handler = getattr(self, "on_" + frame.command.lower(), self.on_ignored)
            try:
                keep_open = await handler(frame)
            except StompProtocolError as exc:
                await self.send_error(str(exc), receipt_id=frame.headers.get("receipt"))
                return
            if keep_open is False:
                return

    # ------------------------------------------------------------------
    # Client frames
    # ------------------------------------------------------------------
    async def on_connect(self, frame: Frame):
        self.stomp_version = negotiate_version(frame.headers.get("accept-version"))
        headers = {
            "version": self.stomp_version,
            "heart-beat": "0,0",
            "server": SERVER_NAME,
            "session": self.session_id,
        }
        await self.send_frame(Frame("CONNECTED", headers))

    on_stomp = on_connect

    async def on_subscribe(self, frame: Frame):
        destination = self._require_header(frame, "destination")
        subscription_id = frame.headers.get("id") or destination
        if self.destinations.is_broker(destination):
            group = Destinations.group_name(destination)
            if group not in self._joined:
                await self.channel_layer.group_add(group, self.channel_name)
                self._joined.add(group)
        elif not self.destinations.is_user(destination):
            logger.warning("STOMP SUBSCRIBE to unsupported destination=%s session=%s",
                           destination, self.session_id)
        self.subscriptions[subscription_id] = destination
        await self.send_receipt(frame)

    async def on_unsubscribe(self, frame: Frame):
        subscription_id = frame.headers.get("id") or frame.headers.get("destination")
        destination = self.subscriptions.pop(subscription_id, None)
        if destination and destination not in self.subscriptions.values():
            group = Destinations.group_name(destination)
            if group in self._joined:
                await self.channel_layer.group_discard(group, self.channel_name)
                self._joined.discard(group)
        await self.send_receipt(frame)

    async def on_send(self, frame: Frame):
        destination = self._require_header(frame, "destination")
        route = self.destinations.application_route(destination)
        if route is not None:
            await self.handle_command(route, frame.body)
        elif self.destinations.is_broker(destination):
            await self.broadcast(destination, frame.body,
                                 frame.headers.get("content-type", "text/plain"))
        else:
            logger.info("STOMP SEND to unknown destination=%s session=%s", destination, self.session_id)
            await self.reply_private(error_payload(NotFound(f"No handler for destination {destination!r}")))
        await self.send_receipt(frame)

    async def on_disconnect(self, frame: Frame):
        await self.send_receipt(frame)
        await self.close()
        return False

    async def on_ignored(self, frame: Frame):
        # Transactions and acknowledgements are not supported; messages are auto-acked.
        await self.send_receipt(frame)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def handle_command(self, route: str, body: str):
        try:
            reply = await database_sync_to_async(controller.dispatch)(route, body)
        except Exception as exc:
            error = as_erezept_error(exc)
            if error.kind is ErrorKind.OTHER:
                logger.error("Unexpected WebSocket error on %s", route, exc_info=exc)
            else:
                logger.warning("WebSocket error [%s]: %s", error.status_code, error.message)
            await self.reply_private(error_payload(error))
            return

        if reply.broadcast is not None:
            await self.broadcast(self.destinations.erezept_topic, _dumps(reply.broadcast))
        if reply.payload is not None:
            await self.reply_private(reply.payload)

    async def broadcast(self, destination: str, body: str, content_type: str = JSON_CONTENT_TYPE):
        await self.channel_layer.group_send(
            Destinations.group_name(destination),
            {
                "type": "stomp.broadcast",
                "destination": destination,
                "body": body,
                "content_type": content_type,
            },
        )

    async def reply_private(self, payload: Any):
        destination = self.destinations.user_queue
        delivered = False
        for subscription_id, subscribed in self.subscriptions.items():
            if subscribed == destination:
                await self.send_message(subscription_id, destination, _dumps(payload))
                delivered = True
        if not delivered:
            logger.debug("No subscription for %s on session=%s; reply dropped", destination, self.session_id)

    # Channel-layer event handler for group_send({"type": "stomp.broadcast", ...}).
    async def stomp_broadcast(self, event):
        for subscription_id, subscribed in list(self.subscriptions.items()):
            if subscribed == event["destination"]:
                await self.send_message(subscription_id, event["destination"], event["body"],
                                        event.get("content_type", JSON_CONTENT_TYPE))

    # ------------------------------------------------------------------
    # Server frames
    # ------------------------------------------------------------------
    async def send_frame(self, frame: Frame):
        await self.send(text_data=frame.render())

    async def send_message(self, subscription_id: str, destination: str, body: str,
                           content_type: str = JSON_CONTENT_TYPE):
        headers = {
            "destination": destination,
            "subscription": subscription_id,
            "message-id": f"{self.session_id}-{next(self._message_ids)}",
            "content-type": content_type,
        }
        await self.send_frame(Frame("MESSAGE", headers, body))

    async def send_receipt(self, frame: Frame):
        receipt = frame.headers.get("receipt")
        if receipt:
            await self.send_frame(Frame("RECEIPT", {"receipt-id": receipt}))

    async def send_error(self, message: str, receipt_id: Optional[str] = None):
        logger.warning("STOMP protocol error session=%s: %s", getattr(self, "session_id", None), message)
        headers = {"message": message, "content-type": "text/plain"}
        if receipt_id:
            headers["receipt-id"] = receipt_id
        await self.send_frame(Frame("ERROR", headers, message))
        await self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _require_header(frame: Frame, name: str) -> str:
        value = frame.headers.get(name)
        if not value:
            raise StompProtocolError(f"Missing '{name}' header in {frame.command} frame")
        return value

    def log_frame(self, frame: Frame):
        h = frame.headers
        if frame.command in ("CONNECT", "STOMP"):
            logger.info("STOMP %s session=%s host=%s accept-version=%s",
                        frame.command, self.session_id, h.get("host"), h.get("accept-version"))
        elif frame.command == "SUBSCRIBE":
            logger.info("STOMP SUBSCRIBE session=%s destination=%s id=%s",
                        self.session_id, h.get("destination"), h.get("id"))
        else:
            logger.info("STOMP %s session=%s destination=%s",
                        frame.command, self.session_id, h.get("destination"))
