from __future__ import annotations


class ImageEditError(Exception):
    """Base class for errors raised by the editing core."""


class DuplicateFilterError(ImageEditError):
    pass


class UnknownFilter(ImageEditError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Filter '{name}' does not exist")
        self.name = name


class PathNotFound(ImageEditError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Image not found: {path}")
        self.path = path


class FilterApplicationFailed(ImageEditError):
    def __init__(self, filter_name: str, detail: str) -> None:
        super().__init__(f"Filter '{filter_name}' failed: {detail}")
        self.filter_name = filter_name
        self.detail = detail


class ExternalProviderError(ImageEditError):
    pass


class ExternalProviderTimeout(ImageEditError):
    pass
