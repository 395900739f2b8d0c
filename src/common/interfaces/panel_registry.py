from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from dal.models import PanelHandle, PanelVisibility


@runtime_checkable
class PanelRegistry(Protocol):
    """Protocol for minting short addressable handles that point at stored documents."""

    async def create(
        self,
        target_url: str,
        *,
        owner_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        visibility: "PanelVisibility" = ...,
        ttl_seconds: Optional[int] = None,
    ) -> "PanelHandle":
        """Register a new handle for ``target_url``."""
        ...

    async def resolve(self, panel_id: str) -> Optional[str]:
        """Return the target URL of an active handle, or None."""
        ...
