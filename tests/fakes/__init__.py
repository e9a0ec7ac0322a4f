"""
Fake storage for testing.

Usage:
    from tests.fakes import FakeDatabase

    db = FakeDatabase()
    app.dependency_overrides[get_db] = lambda: db
"""
from tests.fakes.mongo import FakeClient, FakeCollection, FakeDatabase, FakeSession

__all__ = ["FakeClient", "FakeCollection", "FakeDatabase", "FakeSession"]
