from arise.content.loader import ContentError, ContentRegistry

__all__ = ["ContentError", "ContentRegistry"]
