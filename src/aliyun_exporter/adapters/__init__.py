"""Adapters connecting the core to httpx, storage and ASGI servers."""
