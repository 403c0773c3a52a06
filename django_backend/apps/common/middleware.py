import logging

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.authentication import JWTAuthentication

logger = logging.getLogger(__name__)


class JWTWebSocketMiddleware(BaseMiddleware):
    """
    Resolves the websocket caller from a simplejwt access token.

    The token is read from the ``access_token`` cookie or an
    ``Authorization: Bearer`` header. Query parameters are not used.
    """

    def __init__(self, inner):
        super().__init__(inner)
        self.auth = JWTAuthentication()

    async def __call__(self, scope, receive, send):
        token = self.get_token(scope)
        if token:
            user = await self.get_user_from_token(token)
        else:
            logger.warning(f"No JWT token on websocket connection to {scope.get('path')}")
            user = AnonymousUser()

        scope["user"] = user
        return await super().__call__(scope, receive, send)

    def get_token(self, scope):
        headers = dict(scope.get("headers", []))
        cookie_header = headers.get(b"cookie", b"").decode("utf-8")
        if cookie_header:
            cookies = {
                k.strip(): v
                for k, v in (
                    c.split("=", 1) for c in cookie_header.split(";") if "=" in c
                )
            }
            token = cookies.get("access_token")
            if token:
                return token

        auth_header = headers.get(b"authorization", b"").decode("utf-8")
        if auth_header.startswith("Bearer "):
            return auth_header.split(" ", 1)[1]
        return None

    @database_sync_to_async
    def get_user_from_token(self, token):
        try:
            validated_token = self.auth.get_validated_token(token)
            return self.auth.get_user(validated_token)
        except Exception as e:
            logger.warning(f"Websocket token validation failed: {str(e)}")
            return AnonymousUser()
