import logging

from channels.middleware import BaseMiddleware

logger = logging.getLogger(__name__)


class HandshakeLoggingMiddleware(BaseMiddleware):
    """Log WebSocket upgrade requests and whether they were accepted."""

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "websocket":
            return await super().__call__(scope, receive, send)

        headers = {k.decode("latin1").lower(): v.decode("latin1") for k, v in scope.get("headers", [])}
        path = scope.get("path")
        logger.info(
            "WS handshake start path=%s remote=%s host=%s x-forwarded-for=%s proto=%s origin=%s "
            "subprotocol=%s extensions=%s version=%s",
            path,
            scope.get("client"),
            headers.get("host"),
            headers.get("x-forwarded-for"),
            headers.get("x-forwarded-proto"),
            headers.get("origin"),
            headers.get("sec-websocket-protocol"),
            headers.get("sec-websocket-extensions"),
            headers.get("sec-websocket-version"),
        )
        accepted = False

        async def logging_send(message):
            nonlocal accepted
            if message["type"] == "websocket.accept":
                accepted = True
                logger.info("WS handshake success path=%s subprotocol=%s", path, message.get("subprotocol"))
            elif message["type"] == "websocket.close" and not accepted:
                logger.warning("WS handshake rejected path=%s code=%s", path, message.get("code"))
            await send(message)

        return await super().__call__(scope, receive, logging_send)
