"""
Pytest configuration for docrecord tests.

Sets up the asyncio backend for anyio-marked tests and automatic
parametrization of the ``store`` fixture for MultiStoreTestBase classes.
"""

import pytest

from docrecord import InMemoryClient, Store
from docrecord.testing import MultiStoreTestBase


@pytest.fixture
def anyio_backend():
    """Run anyio-marked tests on asyncio only (the pymongo client needs it)."""
    return "asyncio"


def pytest_generate_tests(metafunc):
    """
    Generate tests for each enabled store.

    Every test method in a MultiStoreTestBase subclass that requests
    ``store`` runs once per store the class enables.
    """
    if (metafunc.cls is not None and
            issubclass(metafunc.cls, MultiStoreTestBase) and
            "store" in metafunc.fixturenames):
        stores = metafunc.cls.get_available_stores()
        metafunc.parametrize("store", stores, indirect=True, ids=[f"store-{s}" for s in stores])


@pytest.fixture
async def store(request, anyio_backend):
    """Database handle for the store named by the test parametrization."""
    store_name = getattr(request, "param", "memory")
    test_class = request.cls
    if test_class is None or not issubclass(test_class, MultiStoreTestBase):
        test_class = MultiStoreTestBase
    driver = test_class.create_driver(store_name)

    handle = await driver.connect()
    yield handle

    await driver.clear()
    await driver.close()


@pytest.fixture
async def memory_store(anyio_backend):
    """Connected in-memory ``Store``; closed after the test."""
    memory = Store(client_factory=InMemoryClient)
    await memory.init("mongodb://localhost/docrecord_test")
    yield memory
    await memory.close()


@pytest.fixture
def queries():
    """Audit hook recorder: every query the hook saw, in order."""
    return []


@pytest.fixture
def query_log(queries):
    return queries.append
