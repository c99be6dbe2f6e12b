from depwatch.storage.cursor import CursorEntry, JsonCursorStore

__all__ = ["CursorEntry", "JsonCursorStore"]
