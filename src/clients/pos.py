"""Dependency injection provider for the POS API client."""

from src.services.pos_service import PosService

_pos_service: PosService | None = None


def get_pos_service() -> PosService:
    """Get or create the PosService singleton."""
    global _pos_service
    if _pos_service is None:
        _pos_service = PosService()
    return _pos_service


async def close_pos_service() -> None:
    """Close the PosService singleton, if it was created."""
    global _pos_service
    if _pos_service is not None:
        await _pos_service.close()
        _pos_service = None
