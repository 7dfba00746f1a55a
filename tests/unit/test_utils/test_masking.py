"""Tests for PII masking helpers."""

import pytest

from notification_service.features.notifications.entities import Recipient
from notification_service.utils.masking import PIIMasker, mask_email, mask_phone, mask_recipient, mask_token


@pytest.mark.unit
class TestMasking:
    @pytest.mark.parametrize(
        ("email", "expected"),
        [
            ("alice@example.com", "a***e@example.com"),
            ("al@example.com", "a***@example.com"),
            ("not-an-email", "***"),
            (None, None),
        ],
    )
    def test_mask_email(self, email, expected):
        assert mask_email(email) == expected

    def test_mask_phone(self):
        assert mask_phone("+5511999990000") == "+55***00"
        assert mask_phone("123") == "***"

    def test_mask_token(self):
        assert mask_token("device-token-abcdef123456") == "device-t***3456"
        assert mask_token("short") == "***"

    def test_custom_mask(self):
        assert PIIMasker(mask="##").mask_phone("+5511999990000") == "+55##00"

    def test_mask_recipient(self):
        recipient = Recipient(user_id="u1", email="bob@example.com", role="courier")

        assert mask_recipient(recipient) == {
            "user_id": "u1",
            "role": "courier",
            "email": "b***b@example.com",
            "phone": None,
            "device_token": None,
        }
