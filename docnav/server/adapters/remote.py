from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..errors import ManifestFetchError, PageFetchError, RegistryFetchError
from ..models import CategoryManifest, CategoryMeta, PageSource, Registry

logger = logging.getLogger(__name__)

REGISTRY_PATH = "/navigation/nav.json"
DEFAULT_TIMEOUT = 10.0

# InvalidURL is raised while building the request and is not an HTTPError.
REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


def open_client(
    base_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> httpx.AsyncClient:
    """Return an async client rooted at the documentation site."""
    return httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)


def page_url(page: str) -> str:
    # Page paths in manifests are site-relative and usually lack the leading slash.
    return "/" + page.lstrip("/")


class DocsSource:
    """Reads the registry, category manifests and markdown pages of a docs site."""

    def __init__(self, client: httpx.AsyncClient, registry_path: str = REGISTRY_PATH) -> None:
        self.client = client
        self.registry_path = registry_path

    async def fetch_registry(self) -> Registry:
        try:
            response = await self.client.get(self.registry_path)
        except REQUEST_ERRORS as exc:
            raise RegistryFetchError(self.registry_path, reason=str(exc)) from exc
        if not response.is_success:
            raise RegistryFetchError(self.registry_path, response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise RegistryFetchError(self.registry_path, reason=f"invalid registry: {exc}") from exc
        if not isinstance(data, dict):
            raise RegistryFetchError(self.registry_path, reason="invalid registry: expected an object")
        raw_categories = data.get("categories")
        if raw_categories is not None and not isinstance(raw_categories, list):
            raise RegistryFetchError(self.registry_path, reason="invalid registry: categories is not a list")
        categories = []
        for position, raw in enumerate(raw_categories or []):
            try:
                categories.append(CategoryMeta.model_validate(raw))
            except ValidationError as exc:
                logger.warning("Skipping registry category #%d: %s", position, exc)
        try:
            return Registry.model_validate({**data, "categories": categories})
        except ValidationError as exc:
            raise RegistryFetchError(self.registry_path, reason=f"invalid registry: {exc}") from exc

    async def fetch_manifest(self, category: CategoryMeta) -> CategoryManifest:
        path = category.data_file or ""
        try:
            response = await self.client.get(path)
        except REQUEST_ERRORS as exc:
            raise ManifestFetchError(category.id, path, reason=str(exc)) from exc
        if not response.is_success:
            raise ManifestFetchError(category.id, path, response.status_code)
        try:
            return CategoryManifest.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ManifestFetchError(category.id, path, reason=f"invalid manifest: {exc}") from exc

    async def fetch_page(self, source: PageSource) -> str:
        path = page_url(source.page)
        try:
            response = await self.client.get(path)
        except REQUEST_ERRORS as exc:
            raise PageFetchError(source.page, path, reason=str(exc)) from exc
        if not response.is_success:
            raise PageFetchError(source.page, path, response.status_code)
        logger.debug("Fetched %s (%d bytes)", path, len(response.content))
        return response.text
