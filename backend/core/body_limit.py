"""Request body size limit for JSON endpoints."""

import logging

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

PAYLOAD_TOO_LARGE_DETAIL = 'Request body too large'


class BodySizeLimitMiddleware:
    """Rejects requests whose body exceeds ``max_body_bytes`` with 413.

    A declared ``Content-Length`` is checked before the app runs; bodies sent
    without one are counted as they are read.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get('content-length')
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = JSONResponse(
                    {'detail': 'Invalid Content-Length header'},
                    status_code=status.HTTP_400_BAD_REQUEST,
                )
                await response(scope, receive, send)
                return
            if declared > self.max_body_bytes:
                logger.warning('Rejected %s byte body on %s', declared, scope.get('path'))
                response = JSONResponse(
                    {'detail': PAYLOAD_TOO_LARGE_DETAIL},
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                )
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message['type'] == 'http.request':
                received += len(message.get('body', b''))
                if received > self.max_body_bytes:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=PAYLOAD_TOO_LARGE_DETAIL,
                    )
            return message

        await self.app(scope, limited_receive, send)
