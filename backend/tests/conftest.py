"""
Pytest fixtures for shopsync backend tests.

Provides test database setup, two tenants, API tokens, and a fake Shopify
HTTP session that serves canned, Link-paginated collections.
"""

import pytest
import requests

from shopsync import create_app
from shopsync.extensions import db
from shopsync.models import Tenant
from shopsync.services import token_service
from shopsync.services.shopify_client import ShopifyClient
from shopsync.services.sync_service import SyncOrchestrator


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SCHEDULER_ENABLED': False,
        'SHOPIFY_WEBHOOK_SECRET': 'test-webhook-secret',
        'SYNC_RETRY_BACKOFF': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Create Tenant A (first store)."""
    tenant = Tenant(
        name="Acme Outfitters",
        shop_domain="acme.myshopify.com",
        access_token="shpat_acme",
        is_active=True,
    )
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second store)."""
    tenant = Tenant(
        name="Beta Goods",
        shop_domain="beta.myshopify.com",
        access_token="shpat_beta",
        is_active=True,
    )
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def token_a(tenant_a):
    """Plaintext API token for Tenant A."""
    _, plaintext = token_service.issue_token(tenant_a.id, label="tests")
    return plaintext


@pytest.fixture(scope='function')
def token_b(tenant_b):
    """Plaintext API token for Tenant B."""
    _, plaintext = token_service.issue_token(tenant_b.id, label="tests")
    return plaintext


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


# =============================================================================
# FAKE SHOPIFY
# =============================================================================

class FakeResponse:
    """The subset of requests.Response the client reads."""

    def __init__(self, status_code=200, body=None, headers=None, next_url=None):
        self.status_code = status_code
        self._body = body
        self.headers = dict(headers or {})
        if next_url:
            self.headers["Link"] = f'<{next_url}>; rel="next"'

    @property
    def links(self):
        # Same parsing requests.Response.links does
        result = {}
        header = self.headers.get("Link")
        if header:
            for link in requests.utils.parse_header_links(header):
                result[link.get("rel") or link.get("url")] = link
        return result

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeShopifySession:
    """
    Stands in for requests.Session.

    pages: resource -> list of pages (each a list of records); pages are
        chained with page_info cursors in the Link header.
    failures: resource -> queue of FakeResponse or exceptions returned
        before any page is served.
    """

    def __init__(self, pages=None, failures=None):
        self.headers = {}
        self.pages = dict(pages or {})
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.calls = []

    @staticmethod
    def resource_for(url: str) -> str:
        path = url.split("/admin/api/", 1)[1].split("/", 1)[1]
        return path.split("?", 1)[0].replace(".json", "")

    def calls_for(self, resource: str) -> list:
        return [call for call in self.calls if self.resource_for(call[0]) == resource]

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        resource = self.resource_for(url)

        queued = self.failures.get(resource)
        if queued:
            failure = queued.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return failure

        pages = self.pages.get(resource) or [[]]
        index = int(url.split("page_info=", 1)[1]) if "page_info=" in url else 0
        next_url = None
        if index + 1 < len(pages):
            next_url = f"{url.split('?', 1)[0]}?page_info={index + 1}"
        return FakeResponse(200, {resource: pages[index]}, next_url=next_url)


@pytest.fixture(scope='function')
def fake_shopify():
    return FakeShopifySession()


@pytest.fixture(scope='function')
def make_orchestrator(db_session):
    """Build an orchestrator whose clients talk to the given fake session."""
    def _make(fake, sleeps=None, **kwargs):
        kwargs.setdefault("retry_backoff", 0.5)
        return SyncOrchestrator(
            db_session,
            client_factory=lambda tenant: ShopifyClient.for_tenant(tenant, session=fake),
            sleep=(sleeps.append if sleeps is not None else (lambda _s: None)),
            **kwargs,
        )
    return _make
