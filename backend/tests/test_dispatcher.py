"""
Tests for the verification dispatcher.
"""
from types import SimpleNamespace

import pytest

from notes_auth.errors import AuthError, ErrorKind
from notes_auth.services.dispatcher import DispatchError

from conftest import RecordingDispatcher


@pytest.fixture
def user():
    return SimpleNamespace(id=1, email="jane@example.com", phone="+15550001111")


class TestVerificationDispatcher:

    @pytest.mark.asyncio
    async def test_email_code(self, user):
        dispatcher = RecordingDispatcher()

        message = await dispatcher.send_code("email", 12345, user)

        assert message == "OTP sent via email."
        sent = dispatcher.email.sent[0]
        assert sent["to"] == "jane@example.com"
        assert sent["subject"] == "Your Verification Code"
        assert sent["html"] is True
        assert "12345" in sent["body"]

    @pytest.mark.asyncio
    async def test_phone_code(self, user):
        dispatcher = RecordingDispatcher()

        message = await dispatcher.send_code("phone", 12345, user)

        assert message == "OTP sent via SMS."
        assert dispatcher.sms.sent == [{"to": "+15550001111", "body": "Your verification code is 1 2 3 4 5"}]

    @pytest.mark.asyncio
    async def test_unknown_channel(self, user):
        with pytest.raises(AuthError) as exc:
            await RecordingDispatcher().send_code("fax", 12345, user)
        assert exc.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    @pytest.mark.parametrize("channel", ["email", "phone"])
    async def test_transport_failure(self, user, channel):
        dispatcher = RecordingDispatcher()
        dispatcher.email.fail = True
        dispatcher.sms.fail = True

        with pytest.raises(DispatchError) as exc:
            await dispatcher.send_code(channel, 12345, user)

        assert exc.value.kind is ErrorKind.INTERNAL
        assert exc.value.status_code == 500
        assert exc.value.message == "Failed to send verification code. Please try again later."

    @pytest.mark.asyncio
    async def test_reset_link(self):
        dispatcher = RecordingDispatcher()

        await dispatcher.send_reset_link("jane@example.com", "http://frontend.test/password/reset/abc")

        sent = dispatcher.email.sent[0]
        assert sent["html"] is False
        assert "http://frontend.test/password/reset/abc" in sent["body"]

    @pytest.mark.asyncio
    async def test_reset_link_failure(self):
        dispatcher = RecordingDispatcher()
        dispatcher.email.fail = True

        with pytest.raises(DispatchError, match="Cannot send reset password token."):
            await dispatcher.send_reset_link("jane@example.com", "http://frontend.test/password/reset/abc")
