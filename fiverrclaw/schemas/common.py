"""Shared Pydantic v2 building blocks: camelCase wire format and image payloads."""

import base64
import binascii

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_IMAGE_BYTES = 2 * 1024 * 1024
ALLOWED_IMAGE_TYPES = frozenset({"image/png", "image/jpeg", "image/gif", "image/webp"})


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (``what_i_need`` <-> ``whatINeed``)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ImagePayload(CamelModel):
    """An attached image, either hosted elsewhere (``url``) or inline base64 (``data``)."""

    url: str | None = Field(None, max_length=2048)
    data: str | None = None
    mime_type: str | None = Field(None, max_length=64)
    alt: str | None = Field(None, max_length=300)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("Image url must be http(s)")
        return v

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: str | None) -> str | None:
        if v is None:
            return v
        # Accept data URIs as well as bare base64
        payload = v.split(",", 1)[1] if v.startswith("data:") else v
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("Image data must be valid base64")
        if len(raw) > MAX_IMAGE_BYTES:
            raise ValueError("Image exceeds 2MB limit")
        return payload

    @model_validator(mode="after")
    def check_source(self) -> "ImagePayload":
        if not self.url and not self.data:
            raise ValueError("Image needs either url or data")
        if self.data and not self.mime_type:
            raise ValueError("mimeType is required for inline image data")
        if self.mime_type and self.mime_type not in ALLOWED_IMAGE_TYPES:
            raise ValueError(f"Unsupported image type: {self.mime_type}")
        return self


class MessageResponse(CamelModel):
    message: str
