"""
Image payload intake - validates uploaded medicine package photos
"""
import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from hygeia.config import settings
from hygeia.exceptions import InvalidInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes plus the MIME type detected from their content"""
    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_upload(cls, data: bytes, content_type: Optional[str] = None,
                    max_size: Optional[int] = None) -> "ImagePayload":
        """
        Validate raw upload bytes

        Args:
            data: Uploaded file content
            content_type: MIME type claimed by the client, used only as a fallback
            max_size: Size limit in bytes (defaults to MAX_UPLOAD_SIZE)

        Raises:
            InvalidInput: empty, oversized or unreadable image
        """
        limit = max_size if max_size is not None else settings.MAX_UPLOAD_SIZE
        if not data:
            raise InvalidInput("No image provided.")
        if len(data) > limit:
            raise InvalidInput(f"Image exceeds the {limit // (1024 * 1024)}MB upload limit.")

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
                image_format = img.format
        except Exception as e:
            logger.warning(f"Rejected unreadable image upload: {e}")
            raise InvalidInput("Unsupported or corrupt image file.") from e

        mime_type = Image.MIME.get(image_format or '', content_type or 'image/jpeg')
        return cls(data=data, mime_type=mime_type)

    @classmethod
    def from_data_url(cls, value: str, max_size: Optional[int] = None) -> "ImagePayload":
        """Accept either ``data:<mime>;base64,<data>`` or bare base64"""
        if not value or not value.strip():
            raise InvalidInput("No image provided.")

        value = value.strip()
        content_type = None
        if value.startswith('data:') and ',' in value:
            header, value = value.split(',', 1)
            content_type = header[5:].split(';')[0] or None

        try:
            data = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInput("Image is not valid base64 data.") from e

        return cls.from_upload(data, content_type=content_type, max_size=max_size)
