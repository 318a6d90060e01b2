"""Shared fixtures for integration tests against an in-process storefront backend."""

import json
import secrets
from typing import Any, Dict, List, Optional

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from selorg_client.core.config.settings import ClientSettings
from selorg_client.services.session_context import SessionContext

API_ROOT = "/api/v1/customer"
VALID_OTP = "123456"


class StorefrontBackend:
    """
    Minimal customer API: OTP auth, a protected profile and logout.

    Issued access tokens are accepted until revoked; ``revoke_all`` makes
    the next protected call answer 401 like an expired session.
    """

    def __init__(self, resend_cooldown: int = 1):
        self.resend_cooldown = resend_cooldown
        self.sessions: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}
        self.requests: List[Dict[str, Any]] = []

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(f"{API_ROOT}/auth/send-otp", self.send_otp)
        app.router.add_post(f"{API_ROOT}/auth/verify-otp", self.verify_otp)
        app.router.add_post(f"{API_ROOT}/auth/resend-otp", self.resend_otp)
        app.router.add_post(f"{API_ROOT}/auth/logout", self.logout)
        app.router.add_get(f"{API_ROOT}/user/profile", self.profile)
        return app

    def revoke_all(self) -> None:
        self.tokens.clear()

    async def _record(self, request: web.Request) -> Dict[str, Any]:
        text = await request.text()
        body = json.loads(text) if text else {}
        self.requests.append(
            {"path": request.path, "authorization": request.headers.get("Authorization"), "json": body}
        )
        return body

    def _phone_for(self, request: web.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme != "Bearer":
            return None
        return self.tokens.get(token)

    async def send_otp(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        phone = body.get("phoneNumber")
        if not phone:
            return web.json_response({"message": "phoneNumber is required"}, status=400)
        session_id = f"sess-{secrets.token_hex(4)}"
        self.sessions[session_id] = phone
        return web.json_response(
            {
                "success": True,
                "data": {"sessionId": session_id, "resendCooldownSeconds": self.resend_cooldown},
            }
        )

    async def resend_otp(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        if body.get("sessionId") not in self.sessions:
            return web.json_response({"success": False, "message": "Session expired"})
        return web.json_response(
            {"success": True, "data": {"resendCooldownSeconds": self.resend_cooldown}}
        )

    async def verify_otp(self, request: web.Request) -> web.Response:
        body = await self._record(request)
        phone = self.sessions.get(body.get("sessionId"))
        if phone is None:
            return web.json_response({"message": "Session not found"}, status=404)
        if body.get("otp") != VALID_OTP:
            return web.json_response({"success": False, "message": "Invalid OTP"})

        del self.sessions[body["sessionId"]]
        access_token = f"acc-{secrets.token_hex(8)}"
        self.tokens[access_token] = phone
        return web.json_response(
            {
                "success": True,
                "data": {
                    "accessToken": access_token,
                    "refreshToken": f"ref-{secrets.token_hex(8)}",
                    "user": {"phoneNumber": phone},
                },
            }
        )

    async def profile(self, request: web.Request) -> web.Response:
        await self._record(request)
        phone = self._phone_for(request)
        if phone is None:
            return web.json_response({"message": "Unauthorized", "code": "TOKEN_EXPIRED"}, status=401)
        return web.json_response({"success": True, "data": {"phoneNumber": phone, "name": "Test User"}})

    async def logout(self, request: web.Request) -> web.Response:
        await self._record(request)
        header = request.headers.get("Authorization", "")
        self.tokens.pop(header.partition(" ")[2], None)
        return web.json_response({"success": True})


@pytest_asyncio.fixture
async def storefront():
    """Running storefront backend."""
    backend = StorefrontBackend()
    server = TestServer(backend.build_app())
    await server.start_server()
    backend.base_url = str(server.make_url(API_ROOT))
    yield backend
    await server.close()


@pytest_asyncio.fixture
async def integration_settings(storefront, tmp_path, encryption_key):
    """Settings pointing at the running backend with an encrypted store."""
    return ClientSettings(
        env="testing",
        api_base_url=storefront.base_url,
        credential_store_path=str(tmp_path / "credentials.json"),
        encryption_key=encryption_key,
        otp_resend_cooldown=1,
    )


@pytest_asyncio.fixture
async def context(integration_settings):
    """Started session context backed by an encrypted file store."""
    async with SessionContext.create(integration_settings) as ctx:
        yield ctx

