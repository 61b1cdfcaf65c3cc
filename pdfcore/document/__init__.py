from .loader import DocumentHandle, load_document

__all__ = ["DocumentHandle", "load_document"]
