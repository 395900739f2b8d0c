from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from report.storage import UploadResult


@runtime_checkable
class ContentStore(Protocol):
    """Protocol for durable storage of rendered documents."""

    async def upload_document(self, content: bytes, suggested_name: str) -> "UploadResult":
        """Store ``content`` and return where it can be fetched from."""
        ...
