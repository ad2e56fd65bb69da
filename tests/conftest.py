# barberpos Live API Suite - Shared Configuration and Fixtures
#
# Starts the backend on a throwaway SQLite file, seeds two barbershops
# and hands out httpx clients that forward the gateway's tenant headers.

import os
import sys
import time
import tempfile
import subprocess
import shutil
from pathlib import Path
from typing import Generator, Optional, Dict, List
from dataclasses import dataclass, field

import pytest
import httpx


BACKEND_DIR = Path(__file__).resolve().parent.parent / "backend"
BACKEND_PORT = int(os.environ.get("TEST_BACKEND_PORT", "5001"))


@dataclass
class TestConfig:
    backend_base_url: str = os.environ.get("TEST_BACKEND_URL", f"http://127.0.0.1:{BACKEND_PORT}")
    request_timeout: float = float(os.environ.get("TEST_REQUEST_TIMEOUT", "30"))
    server_startup_timeout: float = float(os.environ.get("TEST_SERVER_STARTUP_TIMEOUT", "30"))


# =============================================================================
# FAILURE REPORTING
# =============================================================================

LIKELY_CAUSES = {
    400: "Validation failed - missing field, bad integer, or unknown tender/kind",
    401: "Tenant context missing - X-Tenant-Id header absent or malformed",
    404: "Not found - wrong id, inactive item, or another tenant's row",
    409: "Conflict - till already open, document already paid, or refused transition",
    422: "Amount mismatch - tenders do not add up to the booking price",
    500: "Server error - check backend logs for the stack trace",
}


class TestFailure(Exception):
    """Failure with scenario, expectation, probable cause and where to look."""

    def __init__(
        self,
        scenario: str,
        expected: str,
        actual: str,
        likely_cause: str,
        code_location: str,
        response: Optional[httpx.Response] = None,
    ):
        report = [
            "",
            f"SCENARIO:      {scenario}",
            f"EXPECTED:      {expected}",
            f"ACTUAL:        {actual}",
            f"LIKELY CAUSE:  {likely_cause}",
            f"LOOK AT:       {code_location}",
        ]
        if response is not None:
            report.append(f"RESPONSE:      {response.status_code} {response.text[:1000]}")
        self.response = response
        super().__init__("\n".join(report))


def assert_response(
    response: httpx.Response,
    expected_status: int,
    scenario: str,
    code_location: str,
    expected_body_contains: Optional[str] = None
):
    """Raise TestFailure unless the status (and optional body fragment) match."""
    if response.status_code != expected_status:
        raise TestFailure(
            scenario=scenario,
            expected=f"HTTP {expected_status}",
            actual=f"HTTP {response.status_code}",
            likely_cause=LIKELY_CAUSES.get(response.status_code, "Unexpected status code"),
            code_location=code_location,
            response=response,
        )
    if expected_body_contains and expected_body_contains not in response.text:
        raise TestFailure(
            scenario=scenario,
            expected=f"Body containing {expected_body_contains!r}",
            actual="Fragment missing from body",
            likely_cause="Response shape changed",
            code_location=code_location,
            response=response,
        )


# =============================================================================
# HTTP CLIENT
# =============================================================================

class APIClient:
    """httpx client acting as one tenant/actor pair."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=timeout)
        self.tenant_id: Optional[int] = None
        self.actor_id: Optional[str] = None

    def act_as(self, tenant_id: Optional[int], actor_id: Optional[str] = None) -> "APIClient":
        self.tenant_id = tenant_id
        self.actor_id = actor_id
        return self

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {}
        if self.tenant_id is not None:
            headers["X-Tenant-Id"] = str(self.tenant_id)
        if self.actor_id:
            headers["X-Actor-Id"] = self.actor_id
        return self.client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)

    def get(self, path: str, params: Optional[Dict] = None) -> httpx.Response:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict] = None) -> httpx.Response:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[Dict] = None) -> httpx.Response:
        return self.request("PUT", path, json=json)

    def patch(self, path: str, json: Optional[Dict] = None) -> httpx.Response:
        return self.request("PATCH", path, json=json)

    def close(self):
        self.client.close()


# =============================================================================
# SEED DATA
# =============================================================================

@dataclass
class SeededTenant:
    """Ids of the rows seeded for one barbershop."""
    tenant_id: int
    provider_id: int
    service_id: int
    product_id: int
    booking_ids: List[int] = field(default_factory=list)


# =============================================================================
# SERVER MANAGEMENT
# =============================================================================

class ServerManager:
    """Runs `flask run` against a temp SQLite file for the whole session."""

    def __init__(self, config: TestConfig):
        self.config = config
        self.workdir = Path(tempfile.mkdtemp(prefix="barberpos_live_"))
        self.db_url = f"sqlite:///{self.workdir / 'live.sqlite3'}"
        self.process: Optional[subprocess.Popen] = None

    def start(self) -> bool:
        env = dict(os.environ, DATABASE_URL=self.db_url, FLASK_APP="wsgi.py")
        self.process = subprocess.Popen(
            [sys.executable, "-m", "flask", "run", "--port", str(BACKEND_PORT)],
            cwd=str(BACKEND_DIR),
            env=env,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        deadline = time.monotonic() + self.config.server_startup_timeout
        while time.monotonic() < deadline:
            try:
                # 503 until the schema exists; the process is up either way
                probe = httpx.get(f"{self.config.backend_base_url}/api/system/health", timeout=2.0)
                if probe.status_code in (200, 503):
                    return True
            except (httpx.ConnectError, httpx.TimeoutException):
                pass
            time.sleep(0.5)
        return False

    def stop(self):
        if self.process:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
            self.process = None
        shutil.rmtree(self.workdir, ignore_errors=True)

    def initialize_db(self) -> Dict[str, SeededTenant]:
        """
        Create the schema and seed two barbershops directly through the
        app factory. Bookings come from the scheduling system, so they are
        written straight to the database rather than through the API.
        """
        from barberpos import create_app
        from barberpos.extensions import db
        from barberpos.models import Booking, Product, Service
        from barberpos.services import tenant_service

        app = create_app({"SQLALCHEMY_DATABASE_URI": self.db_url})

        seeded = {}
        with app.app_context():
            db.create_all()

            for key, name, code in (("alpha", "Barberia Alpha", "ALPHA"), ("beta", "Barberia Beta", "BETA")):
                tenant = tenant_service.create_tenant(name, code)
                provider = tenant_service.create_provider(tenant.id, f"Barbero {code.title()}")

                service = Service(tenant_id=tenant.id, name="Corte clasico", price_cents=10000, duration_minutes=30)
                product = Product(tenant_id=tenant.id, sku=f"{code}-POM", name="Pomada", price_cents=5000, stock_qty=100)
                db.session.add_all([service, product])
                db.session.commit()

                bookings = [
                    Booking(
                        tenant_id=tenant.id,
                        provider_id=provider.id,
                        service_id=service.id,
                        customer_name=f"Cliente {n}",
                        price_cents=30000,
                    )
                    for n in range(5)
                ]
                db.session.add_all(bookings)
                db.session.commit()

                seeded[key] = SeededTenant(
                    tenant_id=tenant.id,
                    provider_id=provider.id,
                    service_id=service.id,
                    product_id=product.id,
                    booking_ids=[b.id for b in bookings],
                )

        return seeded



# =============================================================================
# PYTEST FIXTURES
# =============================================================================

@pytest.fixture(scope="session")
def test_config() -> TestConfig:
    return TestConfig()


@pytest.fixture(scope="session")
def server_manager(test_config: TestConfig) -> Generator[ServerManager, None, None]:
    manager = ServerManager(test_config)
    if not manager.start():
        manager.stop()
        pytest.fail("Backend did not answer /api/system/health in time")
    yield manager
    manager.stop()


@pytest.fixture(scope="session")
def seed(server_manager: ServerManager) -> Dict[str, SeededTenant]:
    """Seeded tenants, keyed "alpha" and "beta"."""
    return server_manager.initialize_db()


@pytest.fixture(scope="session")
def api_client(test_config: TestConfig, server_manager: ServerManager) -> Generator[APIClient, None, None]:
    client = APIClient(test_config.backend_base_url, timeout=test_config.request_timeout)
    yield client
    client.close()


@pytest.fixture
def client(api_client: APIClient, seed) -> APIClient:
    """No tenant context."""
    return api_client.act_as(None)


@pytest.fixture
def alpha_client(api_client: APIClient, seed) -> APIClient:
    return api_client.act_as(seed["alpha"].tenant_id, "cashier_alpha")


@pytest.fixture
def beta_client(test_config: TestConfig, seed) -> Generator[APIClient, None, None]:
    """Separate connection acting for Barberia Beta."""
    client = APIClient(test_config.backend_base_url, timeout=test_config.request_timeout)
    client.act_as(seed["beta"].tenant_id, "cashier_beta")
    yield client
    client.close()
