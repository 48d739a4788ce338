from abc import ABC, abstractmethod

from shared.helper.errors import ValidationError


class DocumentExtractorInterface(ABC):
    """Turns uploaded file bytes into plain text."""

    @abstractmethod
    async def extract(self, file_bytes: bytes, mime_type: str) -> str:
        """
        Raises:
            ValidationError: If the format is not supported or the bytes cannot be decoded.
        """
        pass


class PlainTextExtractor(DocumentExtractorInterface):
    """Decodes text based formats. Binary formats need an external extraction service."""

    SUPPORTED_PREFIXES = ("text/",)
    SUPPORTED_TYPES = ("application/json", "application/xml", "application/csv")

    async def extract(self, file_bytes: bytes, mime_type: str) -> str:
        mime_type = (mime_type or "").split(";")[0].strip().lower()
        if not (mime_type.startswith(self.SUPPORTED_PREFIXES) or mime_type in self.SUPPORTED_TYPES):
            raise ValidationError(f"Unsupported file type for plain text extraction: '{mime_type}'")
        try:
            return file_bytes.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationError(f"File is not valid UTF-8 text: {e}")
