"""
Pytest configuration for the AgriChain ledger tests.
"""

import copy
import itertools
import os
import sys
from pathlib import Path

import pytest

# In-memory ledger and a known JWT secret for every test (set before app imports)
os.environ["DISABLE_MONGO"] = "1"
os.environ["JWT_SECRET_KEY"] = "agrichain-test-secret-key-0123456789abcdef"

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from eth_utils import to_checksum_address  # noqa: E402
from pymongo.errors import DuplicateKeyError  # noqa: E402

from agrichain.services.ledger.ledger_service import LedgerService  # noqa: E402


def wallet(n: int) -> str:
    return to_checksum_address("0x" + f"{n:040x}")


ADMIN = wallet(0xA0)
FARM = wallet(0xF1)
FARM_2 = wallet(0xF2)
COLLECTION_POINT = wallet(0xC1)
WAREHOUSE = wallet(0xB1)
PROCESSING_UNIT = wallet(0xD1)
RETAILER = wallet(0xE1)
STRANGER = wallet(0x99)


# -------------------------------------------------
# Minimal Mongo-like collection (command log, users)
# -------------------------------------------------
def _matches(doc, query):
    for key, cond in (query or {}).items():
        present = key in doc
        value = doc.get(key)
        if isinstance(cond, dict):
            for op, arg in cond.items():
                if op == "$gt" and not (present and value > arg):
                    return False
                if op == "$in" and value not in arg:
                    return False
                if op == "$exists" and present != bool(arg):
                    return False
                if op == "$ne" and value == arg:
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:

    def __init__(self, docs):
        self._docs = docs

    def sort(self, keys):
        for field, direction in reversed(keys):
            self._docs.sort(key=lambda d: d.get(field), reverse=direction < 0)
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:

    def __init__(self, docs=None):
        self.docs = [copy.deepcopy(d) for d in (docs or [])]
        self.unique_fields = set()
        self.fail_inserts = False
        # one-shot callback run before the next insert (simulates a concurrent writer)
        self.before_insert = None
        self._ids = itertools.count(1)

    def create_index(self, field, unique=False):
        if unique:
            self.unique_fields.add(field)
        return f"{field}_1"

    def insert_one(self, doc):
        hook, self.before_insert = self.before_insert, None
        if hook is not None:
            hook()
        if self.fail_inserts:
            raise RuntimeError("mongo write failed")
        for field in self.unique_fields:
            if any(d.get(field) == doc.get(field) for d in self.docs):
                raise DuplicateKeyError(f"E11000 duplicate key error {field}={doc.get(field)}")
        doc.setdefault("_id", next(self._ids))
        self.docs.append(copy.deepcopy(doc))

    def find(self, query=None, projection=None):
        out = []
        for d in self.docs:
            if not _matches(d, query):
                continue
            d = copy.deepcopy(d)
            if projection:
                d = {k: v for k, v in d.items() if k in projection or k == "_id"}
            out.append(d)
        return FakeCursor(out)


# -------------------------------------------------
# Ledger fixtures
# -------------------------------------------------
def make_clock(start=1_700_000_000):
    ticks = itertools.count(start)
    return lambda: next(ticks)


def register_actors(ledger: LedgerService) -> LedgerService:
    ledger.claim_admin_role(ADMIN, "Chain Admin", "9000000000")
    ledger.add_farm_and_profile(ADMIN, FARM, "Green Acres", "9000000001", "Nashik")
    ledger.add_farm_and_profile(ADMIN, FARM_2, "Sunrise Farm", "9000000002", "Pune")
    ledger.claim_collection_point_role(COLLECTION_POINT, "Village CP", "9000000003", "Sinnar")
    ledger.claim_warehouse_role(WAREHOUSE, "Central Warehouse", "9000000004", "Mumbai")
    ledger.claim_processing_unit_role(PROCESSING_UNIT, "Rice Mill", "9000000005", "Thane")
    ledger.claim_retailer_role(RETAILER, "Fresh Mart", "9000000006", "Andheri")
    return ledger


@pytest.fixture
def log_collection():
    return FakeCollection()


@pytest.fixture
def ledger():
    """Fresh in-memory ledger with one actor per role."""
    return register_actors(LedgerService(clock=make_clock()))


@pytest.fixture
def durable_ledger(log_collection):
    """Ledger backed by a command log collection."""
    return register_actors(LedgerService(log_collection=log_collection, clock=make_clock()))


@pytest.fixture
def delivered(ledger):
    """
    Helper: ship `qty` of `product_id` from `sender` to `receiver` and
    receive it. Returns the received child record.
    """
    def _deliver(sender, product_id, qty, receiver):
        child = ledger.split_and_ship(sender, product_id, qty, receiver)
        return ledger.receive_product(receiver, child.product_id)
    return _deliver


# -------------------------------------------------
# Flask fixtures
# -------------------------------------------------
@pytest.fixture
def app(ledger):
    """Create test application around the fixture ledger."""
    from app import create_app
    app = create_app({
        "TESTING": True,
        "LEDGER": ledger,
        "PUBLIC_BASE_URL": "https://trace.agrichain.test",
    })
    return app


@pytest.fixture
def client(app):
    """Create test client for each test."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def auth_headers(app):
    """Bearer header factory: auth_headers(wallet) -> {"Authorization": ...}."""
    from flask_jwt_extended import create_access_token

    def _headers(address):
        with app.app_context():
            token = create_access_token(identity=address)
        return {"Authorization": f"Bearer {token}"}
    return _headers
