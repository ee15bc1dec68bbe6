"""
Function calling orchestration for chat completion APIs.

Use `toolchat.aio` for asyncio code, or `toolchat.core` for the synchronous twin.
"""

__version__ = "0.1.0"
