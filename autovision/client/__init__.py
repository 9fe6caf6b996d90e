from .session import SessionClient
from .token_store import FileTokenStore, MemoryTokenStore, StoredTokens, TokenStore

__all__ = [
    "FileTokenStore",
    "MemoryTokenStore",
    "SessionClient",
    "StoredTokens",
    "TokenStore",
]
