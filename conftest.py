# conftest.py
import os

# settings are read once at import time
os.environ.setdefault("APP_ENV", "dev")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["GATEWAY_KEY_ID"] = "rzp_test_key"
os.environ["GATEWAY_KEY_SECRET"] = "test-gateway-secret"
os.environ["SMTP_HOST"] = ""
os.environ["TAX_RATE"] = "0.18"

import socket
import socketserver
import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from theatre_pos.db import Base, get_db, make_engine
from theatre_pos.errors import GatewayError
from theatre_pos.main import app
from theatre_pos.services.gateway import get_gateway
from theatre_pos.util.audit import RequestContext


class FakeGateway:
    """Stands in for the gateway REST API; records every call."""

    def __init__(self):
        self.remote_orders = []
        self.refunds = []
        self.refund_error: GatewayError | None = None

    def create_remote_order(self, amount_minor, currency, receipt_ref, notes=None):
        self.remote_orders.append((amount_minor, currency, receipt_ref))
        return f"order_test_{len(self.remote_orders)}"

    def refund(self, gateway_payment_id, amount_minor, reason):
        if self.refund_error is not None:
            raise self.refund_error
        self.refunds.append((gateway_payment_id, amount_minor, reason))


@pytest.fixture
def engine(tmp_path):
    # a real file so concurrent sessions see each other's commits
    eng = make_engine(f"sqlite:///{tmp_path / 'pos.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def Session(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(Session):
    with Session() as s:
        yield s


@pytest.fixture
def ctx():
    return RequestContext(user_id=None, request_id="test")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(Session, gateway):
    def _get_db():
        s = Session()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    # no `with`: the lifespan would create tables on the configured DB_URL
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    r = client.post("/admin/dev-bootstrap")
    assert r.status_code == 200, f"/admin/dev-bootstrap failed: {r.text}"

    r = client.post("/auth/login", json={"email": "admin@example.com", "password": "admin"})
    assert r.status_code == 200, f"/auth/login failed: {r.text}"
    tok = r.json()["access_token"]
    return {"Authorization": f"Bearer {tok}"}


@pytest.fixture
def products(client, auth_headers):
    out = {}
    for name, price in (("Caramel Popcorn", "150.00"), ("Masala Soda", "80.00")):
        r = client.post("/products/", headers=auth_headers, json={"name": name, "price": price, "category": "snacks"})
        assert r.status_code == 201, r.text
        out[name] = r.json()["id"]
    return out


class _Sink(socketserver.BaseRequestHandler):
    def handle(self):
        chunks = []
        while True:
            data = self.request.recv(4096)
            if not data:
                break
            chunks.append(data)
        self.server.received.append(b"".join(chunks))


@pytest.fixture
def printer_sink():
    """A raw-TCP 'printer' that reads to EOF, then hangs up."""
    srv = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _Sink)
    srv.daemon_threads = True
    srv.received = []
    t = threading.Thread(target=srv.serve_forever, daemon=True)
    t.start()
    yield srv
    srv.shutdown()
    srv.server_close()


@pytest.fixture
def dead_port():
    s = socket.socket()
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
