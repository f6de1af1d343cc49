"""QR payload formatters and per-type content validation.

The WiFi and vCard strings are read by phone scanners, so their layout must
stay byte-for-byte stable.
"""

import re
from typing import Any, Dict, Mapping, Union
from urllib.parse import urlparse

from pydantic import ValidationError as PydanticValidationError

from qrstudio.core.exceptions import ValidationError
from qrstudio.models.qr_code import QRType
from qrstudio.schemas.schemas import VCardContent, WifiContent

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

QRContent = Union[str, Dict[str, Any]]


def format_wifi_data(ssid: str, password: str, security: str = "WPA", hidden: bool = False) -> str:
    """Build a WiFi network config string (``WIFI:T:...;S:...;P:...;H:...;;``)."""
    return f"WIFI:T:{security};S:{ssid};P:{password};H:{'true' if hidden else 'false'};;"


def format_vcard_data(contact: Mapping[str, Any]) -> str:
    """Build a minimal vCard 3.0 block; missing fields are left empty.

    Values are emitted as-is, without escaping or line folding.
    """
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{contact.get('name') or ''}",
        f"ORG:{contact.get('organization') or ''}",
        f"TITLE:{contact.get('title') or ''}",
        f"TEL:{contact.get('phone') or ''}",
        f"EMAIL:{contact.get('email') or ''}",
        f"URL:{contact.get('website') or ''}",
        "END:VCARD",
    ]
    return "\n".join(lines)


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value.strip()))


def validate_content(qr_type: str, content: Any) -> QRContent:
    """Check ``content`` has the shape its QR type requires and normalize it.

    wifi and vcard take an object; every other type takes a non-empty string.
    """
    try:
        kind = QRType(qr_type)
    except ValueError:
        raise ValidationError(f"Unsupported QR type '{qr_type}'")

    if kind in (QRType.wifi, QRType.vcard):
        if not isinstance(content, Mapping):
            raise ValidationError(f"{kind.value} content must be an object")
        model = WifiContent if kind is QRType.wifi else VCardContent
        try:
            return model.model_validate(dict(content)).model_dump()
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise ValidationError(f"Invalid {kind.value} content: {fields}")

    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Content is required")
    if kind is QRType.url and not is_valid_url(content):
        raise ValidationError("Please enter a valid URL")
    if kind is QRType.email and not is_valid_email(content):
        raise ValidationError("Please enter a valid email address")
    return content


def encode_payload(qr_type: str, content: QRContent) -> str:
    """The text a scanner reads for a QR of the given type."""
    kind = QRType(qr_type)
    if kind is QRType.wifi:
        return format_wifi_data(
            content.get("ssid", ""),
            content.get("password", ""),
            content.get("security", "WPA"),
            bool(content.get("hidden", False)),
        )
    if kind is QRType.vcard:
        return format_vcard_data(content)
    if kind is QRType.email:
        return content if content.startswith("mailto:") else f"mailto:{content}"
    if kind is QRType.phone:
        return content if content.startswith("tel:") else f"tel:{content}"
    if kind is QRType.sms:
        return content if content.upper().startswith("SMSTO:") else f"SMSTO:{content}"
    return content
