"""Shared FastAPI dependencies.

Provides common dependency callables used across route modules.
"""

from flowstudio.services.persistence import PersistenceGateway

_gateway: PersistenceGateway | None = None


def get_gateway() -> PersistenceGateway:
    """Provide the process-wide persistence gateway.

    One instance per process so ``replace_steps`` calls for the same flow
    are serialized across requests.
    """
    global _gateway
    if _gateway is None:
        _gateway = PersistenceGateway()
    return _gateway


def reset_gateway() -> None:
    """Drop the cached gateway (used on shutdown and in tests)."""
    global _gateway
    _gateway = None
