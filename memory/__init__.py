from .session_memory import SessionExistsError, SessionMemoryStore

__all__ = ["SessionExistsError", "SessionMemoryStore"]
