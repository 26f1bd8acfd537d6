"""Shopify catalog gateway (Admin REST + GraphQL).

Thin request/response wrappers used by the orchestrator. Contract:
- Product creation sends a title-derived Idempotency-Key, so a retried
  request cannot create a second product server-side
- product_exists() distinguishes "no match" from a malformed response
- update_tags() replaces the whole tag list; callers pass the current tags
- Collection lookups return None for "not found" and raise only on failure
- Every call honours the bound JobDeadline (timeout capped by what is left)
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
import time
from typing import Any, Callable, Iterable, Iterator

import httpx

from mockup_forge.catalog.retry import retry_with_backoff
from mockup_forge.config import Settings
from mockup_forge.deadline import JobDeadline
from mockup_forge.errors import (
    CatalogAPIError,
    CatalogProtocolError,
    CatalogTransportError,
    JobTimeoutError,
)
from mockup_forge.models import DerivativeProduct
from mockup_forge.products import derivative_title
from mockup_forge.state import replace_tags

logger = logging.getLogger(__name__)

_PRODUCT_SEARCH_QUERY = """
query ($query: String!, $after: String) {
  products(first: 50, query: $query, after: $after) {
    edges {
      node { id title }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

# Upper bound on search pages followed for one title
_MAX_SEARCH_PAGES = 20

# Collection kinds, tried in order: manually curated first, then rule-based
_COLLECTION_KINDS = ("custom_collections", "smart_collections")


def idempotency_key(title: str) -> str:
    """Deterministic creation token: SHA256 of the product title."""
    return hashlib.sha256(title.encode("utf-8")).hexdigest()


def _search_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class CatalogGateway:
    """Stateless wrappers around the catalog's product, collection and tag APIs."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client | None = None,
        retry_sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._admin_url = settings.shopify_admin_domain.rstrip("/")
        self._graphql_url = (
            f"{settings.shopify_store_domain_url.rstrip('/')}"
            f"/admin/api/{settings.shopify_api_version}/graphql.json"
        )
        self._token = settings.shopify_admin_api_access_token
        self._timeout = settings.http_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.Client()
        self._deadline: JobDeadline | None = None
        self._request = retry_with_backoff(
            max_retries=settings.catalog_max_retries,
            base_delay=1.0,
            max_delay=30.0,
            sleep=retry_sleep,
        )(self._send)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @contextlib.contextmanager
    def use_deadline(self, deadline: JobDeadline) -> Iterator[None]:
        """Bound every call made inside the block by ``deadline``."""
        previous = self._deadline
        self._deadline = deadline
        try:
            yield
        finally:
            self._deadline = previous

    # ── Transport ────────────────────────────────────────────────────────

    def _send(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        json: dict | None = None,
        params: dict | None = None,
        headers: dict[str, str] | None = None,
        authenticated: bool = True,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        timeout = self._timeout
        if self._deadline is not None:
            self._deadline.check(operation)
            timeout = self._deadline.timeout_for(self._timeout)

        request_headers = {"Content-Type": "application/json"}
        if authenticated:
            request_headers["X-Shopify-Access-Token"] = self._token
        request_headers.update(headers or {})

        try:
            response = self._client.request(
                method,
                url,
                json=json,
                params=params,
                headers=request_headers,
                timeout=timeout,
                follow_redirects=follow_redirects,
            )
        except httpx.TimeoutException as exc:
            if self._deadline is not None and timeout < self._timeout:
                raise JobTimeoutError(
                    operation, self._deadline.elapsed, self._deadline.budget_seconds
                ) from exc
            raise CatalogTransportError(f"{operation}: timed out ({exc})") from exc
        except httpx.HTTPError as exc:
            raise CatalogTransportError(f"{operation}: {type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise CatalogAPIError(
                f"{operation}: HTTP {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                body=response.text[:2000],
                retry_after=response.headers.get("Retry-After"),
            )
        return response

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise CatalogProtocolError(f"{operation}: response is not JSON") from exc
        if not isinstance(data, dict):
            raise CatalogProtocolError(f"{operation}: expected a JSON object")
        return data

    # ── Collections ──────────────────────────────────────────────────────

    def find_collection_id_by_name(self, name: str) -> str | None:
        """Resolve a collection title to its id (custom, then smart)."""
        for kind in _COLLECTION_KINDS:
            operation = f"lookup {kind} '{name}'"
            response = self._request(
                "GET",
                f"{self._admin_url}/{kind}.json",
                operation=operation,
                params={"title": name},
            )
            records = self._json(response, operation).get(kind) or []
            for record in records:
                if record.get("title", name) == name and "id" in record:
                    return str(record["id"])
        return None

    def add_product_to_collection(self, product_id: str, collection_id: str) -> bool:
        """Create a collect. A rejected collect is logged, not raised."""
        try:
            self._request(
                "POST",
                f"{self._admin_url}/collects.json",
                operation=f"collect product {product_id}",
                json={"collect": {"product_id": product_id, "collection_id": collection_id}},
            )
        except CatalogAPIError as exc:
            logger.error(
                "Could not add product %s to collection %s: HTTP %d %s",
                product_id,
                collection_id,
                exc.status_code,
                exc.body,
            )
            return False
        return True

    # ── Products ─────────────────────────────────────────────────────────

    def create_product(self, product: DerivativeProduct) -> dict[str, Any]:
        """Create a product and return the catalog's ``product`` object."""
        operation = f"create product '{product.title}'"
        response = self._request(
            "POST",
            f"{self._admin_url}/products.json",
            operation=operation,
            json={"product": product.to_payload()},
            headers={"Idempotency-Key": idempotency_key(product.title)},
        )
        created = self._json(response, operation).get("product")
        if not isinstance(created, dict) or "id" not in created:
            raise CatalogProtocolError(f"{operation}: response has no product id")
        logger.info("Created product %s (%s)", created["id"], product.title)
        return created

    def product_exists(self, artwork_title: str, derivative_name: str) -> bool:
        """Exact-title search for an existing derivative.

        The title search is a phrase match, so other artworks sharing the
        suffix can crowd the first page; pages are followed until an exact
        title turns up or the results run out. An empty result list means
        "absent"; a response without ``data.products.edges`` is a protocol
        error.
        """
        full_title = derivative_title(artwork_title, derivative_name)
        operation = f"search product '{full_title}'"
        variables: dict[str, Any] = {"query": f"title:'{_search_literal(full_title)}'"}

        for _ in range(_MAX_SEARCH_PAGES):
            response = self._request(
                "POST",
                self._graphql_url,
                operation=operation,
                json={"query": _PRODUCT_SEARCH_QUERY, "variables": variables},
            )
            result = self._json(response, operation)
            data = result.get("data")
            products = data.get("products") if isinstance(data, dict) else None
            edges = products.get("edges") if isinstance(products, dict) else None
            if not isinstance(edges, list):
                logger.error("GraphQL search returned no products field: %s", result)
                raise CatalogProtocolError(
                    f"{operation}: GraphQL result is missing the 'products' field"
                )
            if any((edge.get("node") or {}).get("title") == full_title for edge in edges):
                return True

            page_info = products.get("pageInfo") or {}
            cursor = page_info.get("endCursor")
            if not page_info.get("hasNextPage") or not cursor:
                return False
            variables = {**variables, "after": cursor}

        raise CatalogProtocolError(
            f"{operation}: search still paginating after {_MAX_SEARCH_PAGES} pages"
        )

    def update_tags(
        self,
        product_id: str,
        current_tags: Iterable[str],
        new_tag: str,
        remove: Iterable[str] = (),
    ) -> list[str]:
        """Add ``new_tag`` (and drop ``remove``) with one full-list replacement.

        No request is sent when the tag is already present and nothing
        needs removing. Returns the resulting tag list.
        """
        current = list(current_tags)
        to_remove = [t for t in remove if t in current]
        if new_tag in current and not to_remove:
            return current

        updated = replace_tags(current, new_tag, to_remove)
        self._request(
            "PUT",
            f"{self._admin_url}/products/{product_id}.json",
            operation=f"update tags of product {product_id}",
            json={"product": {"id": product_id, "tags": ", ".join(updated)}},
        )
        logger.info("Product %s tags -> %s", product_id, updated)
        return updated

    def attach_variant_image(
        self, product_id: str, variant_ids: list[int | str], image_b64: str
    ) -> dict[str, Any]:
        """Upload one image and associate it with ``variant_ids``."""
        operation = f"attach image to product {product_id}"
        response = self._request(
            "POST",
            f"{self._admin_url}/products/{product_id}/images.json",
            operation=operation,
            json={"image": {"attachment": image_b64, "variant_ids": variant_ids}},
        )
        return self._json(response, operation).get("image") or {}

    # ── Media ────────────────────────────────────────────────────────────

    def download_image(self, url: str) -> bytes:
        response = self._request(
            "GET",
            url,
            operation="download artwork image",
            authenticated=False,
            follow_redirects=True,
        )
        return response.content
