"""Stateful services: the client ledger and the tunnel process."""
__all__ = ["ledger", "tunnel"]
