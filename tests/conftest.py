"""Pytest fixtures for the storefront tests."""

import itertools
from collections import defaultdict
from contextlib import contextmanager
from copy import deepcopy

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from config import Settings
from errors import GatewayError
from gateway import PaymentGateway, compute_signature
from main import create_app

SECRET = "test_key_secret"


class InMemoryDatabase:
    """Dict-backed stand-in for `database.Database` with the same method surface."""

    name = "storefront_test"

    def __init__(self):
        self.collections = defaultdict(dict)
        self._ids = itertools.count(1)
        self.batch_reads = 0
        self.fail_create = None
        self.fail_increment_for = None

    def seed(self, collection, doc_id, doc):
        self.collections[collection][doc_id] = deepcopy(doc)

    def raw(self, collection, doc_id):
        return self.collections[collection].get(doc_id)

    def get(self, collection, doc_id):
        doc = self.collections[collection].get(doc_id)
        return {"id": doc_id, **deepcopy(doc)} if doc is not None else None

    def get_many(self, collection, doc_ids):
        self.batch_reads += 1
        found = {}
        for doc_id in doc_ids:
            doc = self.get(collection, doc_id)
            if doc is not None:
                found[doc_id] = doc
        return found

    def find(self, collection, filters=None, limit=0):
        docs = [
            self.get(collection, doc_id)
            for doc_id, doc in self.collections[collection].items()
            if all(doc.get(k) == v for k, v in (filters or {}).items())
        ]
        return docs[:limit] if limit else docs

    def create(self, collection, data, session=None):
        if self.fail_create:
            raise self.fail_create
        if isinstance(data, BaseModel):
            data = data.model_dump()
        doc_id = f"{collection}-{next(self._ids)}"
        self.collections[collection][doc_id] = deepcopy(dict(data))
        return doc_id

    def update(self, collection, doc_id, fields, expect=None, session=None):
        doc = self.collections[collection].get(doc_id)
        if doc is None or any(doc.get(k) != v for k, v in (expect or {}).items()):
            return False
        doc.update(deepcopy(fields))
        return True

    def increment(self, collection, doc_id, field, amount, session=None):
        if doc_id == self.fail_increment_for:
            raise RuntimeError("write conflict")
        doc = self.collections[collection].get(doc_id)
        value = doc.get(field) if doc is not None else None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        doc[field] = value + amount
        return True

    @contextmanager
    def transaction(self):
        snapshot = deepcopy(self.collections)
        try:
            yield object()
        except Exception:
            self.collections = snapshot
            raise

    def ping(self):
        return True

    def list_collection_names(self):
        return sorted(self.collections)


class FakeGateway(PaymentGateway):
    """Gateway whose order creation is recorded locally; signatures use the real check."""

    def __init__(self, secret=SECRET):
        super().__init__("rzp_test_key", secret)
        self.created = []
        self.fail = None

    def create_order(self, amount, currency, receipt, notes=None):
        if self.fail:
            raise self.fail
        gateway_order_id = f"order_gw_{len(self.created) + 1}"
        self.created.append(
            {"id": gateway_order_id, "amount": amount, "currency": currency, "receipt": receipt, "notes": notes}
        )
        return gateway_order_id


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def order_paid(self, order):
        self.sent.append(order)
        return True


def sign(gateway_order_id, payment_id, secret=SECRET):
    return compute_signature(gateway_order_id, payment_id, secret)


@pytest.fixture
def database():
    db = InMemoryDatabase()
    db.seed("products", "p1", {"name": "Kanchipuram Silk Saree", "price": 1000, "stock": 5, "category": "sarees", "image": "https://cdn.example.com/p1.jpg"})
    db.seed("products", "p2", {"name": "Silk Dupatta", "price": 333, "category": "dupattas", "images": ["https://cdn.example.com/p2-a.jpg"]})
    db.seed("products", "p3", {"name": "Bridal Saree", "price": 30000, "stock": 1, "category": "sarees", "featured": True})
    db.seed("settings", "store", {"free_shipping_threshold": 25000, "shipping_cost": 500, "gst": 5})
    return db


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(database, gateway, notifier):
    app = create_app(Settings(), database=database, gateway=gateway, notifier=notifier)
    return TestClient(app)


@pytest.fixture
def customer():
    return {"name": "  Priya Raman ", "email": "Priya@Example.COM ", "phone": "98765 43210"}


@pytest.fixture
def address():
    return {"address": "12 Temple Street", "city": "Chennai", "state": "Tamil Nadu", "pincode": "600001"}


@pytest.fixture
def gateway_unavailable():
    return GatewayError("Payment gateway timed out")
