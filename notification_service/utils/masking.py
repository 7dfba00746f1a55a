"""PII masking for log output.

Recipient contact details never reach the logs in clear text; only enough
characters survive to correlate a line with a support ticket.
"""

from __future__ import annotations

from typing import Any


class PIIMasker:
    """Mask recipient contact details.

    Args:
        mask: Replacement inserted in place of the hidden characters.

    Example:
        >>> PIIMasker().mask_email("alice@example.com")
        'a***e@example.com'
    """

    def __init__(self, mask: str = "***") -> None:
        self.mask = mask

    def mask_email(self, email: str | None) -> str | None:
        """Keep the first and last character of the local part and the domain."""
        if not email:
            return email
        local, sep, domain = email.partition("@")
        if not sep:
            return self.mask
        if len(local) <= 2:
            return f"{local[:1]}{self.mask}@{domain}"
        return f"{local[0]}{self.mask}{local[-1]}@{domain}"

    def mask_phone(self, phone: str | None) -> str | None:
        """Keep the first three and last two characters."""
        if not phone:
            return phone
        if len(phone) < 4:
            return self.mask
        return f"{phone[:3]}{self.mask}{phone[-2:]}"

    def mask_token(self, token: str | None) -> str | None:
        """Keep the first eight and last four characters of a device token."""
        if not token:
            return token
        if len(token) < 10:
            return self.mask
        return f"{token[:8]}{self.mask}{token[-4:]}"

    def mask_recipient(self, recipient: Any) -> dict[str, Any]:
        """Render a recipient as a loggable dict with masked contacts."""
        return {
            "user_id": getattr(recipient, "user_id", None),
            "role": getattr(recipient, "role", None),
            "email": self.mask_email(getattr(recipient, "email", None)),
            "phone": self.mask_phone(getattr(recipient, "phone", None)),
            "device_token": self.mask_token(getattr(recipient, "device_token", None)),
        }


_default_masker = PIIMasker()

mask_email = _default_masker.mask_email
mask_phone = _default_masker.mask_phone
mask_token = _default_masker.mask_token
mask_recipient = _default_masker.mask_recipient
