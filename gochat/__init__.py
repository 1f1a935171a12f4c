"""Chat messaging core: an asyncio WebSocket server and client with acknowledgement modes, and MongoDB-backed chat logs and conversations."""

__version__ = "0.1.0"