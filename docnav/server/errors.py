from __future__ import annotations

from typing import Optional


class FetchError(RuntimeError):
    """A documentation resource could not be retrieved or decoded."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        detail = f"status {status_code}" if status_code is not None else (reason or "request failed")
        super().__init__(f"Failed to fetch {url}: {detail}")


class RegistryFetchError(FetchError):
    pass


class ManifestFetchError(FetchError):
    def __init__(self, category_id: str, url: str, status_code: Optional[int] = None, reason: str = "") -> None:
        self.category_id = category_id
        super().__init__(url, status_code, reason)


class PageFetchError(FetchError):
    def __init__(self, page: str, url: str, status_code: Optional[int] = None, reason: str = "") -> None:
        self.page = page
        super().__init__(url, status_code, reason)
