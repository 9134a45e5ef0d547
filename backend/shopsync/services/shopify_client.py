# Overview: Shopify Admin REST client; fetches paginated collections and maps HTTP failures onto the sync error taxonomy.

"""
Shopify Admin API Client

Collections are fetched page by page following the cursor carried in the
Link response header (rel="next"). All pages are concatenated in memory
and returned as one list; the collections a single store exposes are
small enough for that.

A failed page aborts the whole collection. There is no retry here; the
orchestrator decides what is retryable.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from .errors import AuthError, PermissionScopeError, SyncCancelled, TransientFault, UpstreamError


logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "2024-01"
DEFAULT_TIMEOUT = 30.0
PAGE_LIMIT = 250

# Access scope required by each collection endpoint, used to name a 403.
ENDPOINT_SCOPES = {
    "customers": "read_customers",
    "orders": "read_orders",
    "draft_orders": "read_draft_orders",
    "products": "read_products",
    "shop": "read_shop",
}


def normalize_shop_domain(value: str) -> str:
    """'https://acme.myshopify.com/' -> 'acme.myshopify.com'"""
    domain = (value or "").strip()
    for prefix in ("https://", "http://"):
        if domain.lower().startswith(prefix):
            domain = domain[len(prefix):]
    return domain.rstrip("/").lower()


def _scope_for(endpoint: str) -> str | None:
    resource = endpoint.split("?", 1)[0].split("/", 1)[0]
    if resource.endswith(".json"):
        resource = resource[: -len(".json")]
    return ENDPOINT_SCOPES.get(resource)


def _retry_after(response: requests.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class ShopifyClient:
    """Authenticated client for one tenant's store."""

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.shop_domain = normalize_shop_domain(shop_domain)
        self.api_version = api_version or DEFAULT_API_VERSION
        self.base_url = f"https://{self.shop_domain}/admin/api/{self.api_version}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    @classmethod
    def for_tenant(cls, tenant, *, api_version: str | None = None, timeout: float = DEFAULT_TIMEOUT,
                   session: requests.Session | None = None) -> "ShopifyClient":
        return cls(
            tenant.shop_domain,
            tenant.access_token,
            api_version=tenant.api_version or api_version,
            session=session,
            timeout=timeout,
        )

    def _get(self, url: str, params: dict[str, Any] | None, scope: str | None) -> requests.Response:
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            logger.warning("Shopify request timed out: %s", url)
            raise TransientFault(f"Request timed out: {exc}") from exc
        except requests.ConnectionError as exc:
            logger.warning("Shopify connection failed: %s", url)
            raise TransientFault(f"Connection failed: {exc}") from exc
        except requests.RequestException as exc:
            raise UpstreamError(f"Request failed: {exc}") from exc

        status = response.status_code
        if 200 <= status < 300:
            return response

        logger.warning("Shopify returned HTTP %s for %s", status, url)
        if status == 401:
            raise AuthError("Shopify rejected the access token (HTTP 401)")
        if status == 403:
            raise PermissionScopeError(scope, f"Access token lacks scope '{scope or 'unknown'}' (HTTP 403)")
        if status == 429:
            raise TransientFault("Rate limited by Shopify (HTTP 429)", retry_after=_retry_after(response))
        if status >= 500:
            raise TransientFault(f"Shopify server error (HTTP {status})")
        raise UpstreamError(f"Unexpected HTTP {status} from Shopify", status_code=status)

    def _json(self, response: requests.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError("Shopify returned a non-JSON body", status_code=response.status_code) from exc
        if not isinstance(body, dict):
            raise UpstreamError("Shopify returned an unexpected JSON body", status_code=response.status_code)
        return body

    def fetch_collection(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        resource_key: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch every page of a collection endpoint.

        Args:
            endpoint: path below the API base, e.g. "orders.json"
            params: query parameters for the first page only; the next-page
                URL Shopify returns already carries the page_info cursor
            resource_key: JSON key holding the records (defaults to the
                endpoint's resource name, e.g. "draft_orders")
            cancel_event: checked before each page request

        Raises:
            AuthError, PermissionScopeError, TransientFault, UpstreamError
        """
        scope = _scope_for(endpoint)
        key = resource_key or endpoint.split("?", 1)[0].replace(".json", "")
        url: str | None = f"{self.base_url}/{endpoint.lstrip('/')}"
        page_params = dict(params or {})
        records: list[dict[str, Any]] = []
        pages = 0

        while url:
            if cancel_event is not None and cancel_event.is_set():
                raise SyncCancelled(f"Cancelled while fetching {key} after {pages} page(s)")
            response = self._get(url, page_params or None, scope)
            body = self._json(response)
            records.extend(body.get(key) or [])
            pages += 1

            url = (response.links.get("next") or {}).get("url")
            page_params = {}

        logger.info("Fetched %s %s record(s) in %s page(s) from %s", len(records), key, pages, self.shop_domain)
        return records

    def get_customers(self, params: dict[str, Any] | None = None, **kwargs) -> list[dict[str, Any]]:
        return self.fetch_collection("customers.json", {"limit": PAGE_LIMIT, **(params or {})}, "customers", **kwargs)

    def get_orders(self, params: dict[str, Any] | None = None, **kwargs) -> list[dict[str, Any]]:
        return self.fetch_collection(
            "orders.json", {"status": "any", "limit": PAGE_LIMIT, **(params or {})}, "orders", **kwargs
        )

    def get_draft_orders(self, params: dict[str, Any] | None = None, **kwargs) -> list[dict[str, Any]]:
        return self.fetch_collection(
            "draft_orders.json", {"limit": PAGE_LIMIT, **(params or {})}, "draft_orders", **kwargs
        )

    def get_products(self, params: dict[str, Any] | None = None, **kwargs) -> list[dict[str, Any]]:
        return self.fetch_collection("products.json", {"limit": PAGE_LIMIT, **(params or {})}, "products", **kwargs)

    def _get_single(self, path: str, key: str) -> dict[str, Any] | None:
        response = self._get(f"{self.base_url}/{path}", None, _scope_for(path))
        return self._json(response).get(key)

    def get_customer(self, customer_id) -> dict[str, Any] | None:
        return self._get_single(f"customers/{customer_id}.json", "customer")

    def get_order(self, order_id) -> dict[str, Any] | None:
        return self._get_single(f"orders/{order_id}.json", "order")

    def get_product(self, product_id) -> dict[str, Any] | None:
        return self._get_single(f"products/{product_id}.json", "product")

    def get_shop_info(self) -> dict[str, Any] | None:
        return self._get_single("shop.json", "shop")

    def count(self, resource: str, params: dict[str, Any] | None = None) -> int:
        """Remote record count, e.g. count("orders", {"status": "any"})."""
        response = self._get(f"{self.base_url}/{resource}/count.json", params, _scope_for(resource))
        return int(self._json(response).get("count") or 0)
