import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from storefront.catalogue.creation import CreateProduct
from storefront.config import reset_settings
from storefront.payments import reset_gateway


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    bed = DomainFixture(storefront)
    bed.setup()
    setup_db(storefront)
    yield bed
    drop_db(storefront)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    reset_settings()
    reset_gateway()
    with storefront_bed.domain_context():
        yield

        # Clear all databases and drain the event store
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
    reset_settings()
    reset_gateway()


@pytest.fixture
def create_product():
    """Factory fixture: create a catalogue product and return its id."""

    def _create(name="Test Product", price=20.0, stock=5, images=None):
        return current_domain.process(
            CreateProduct(
                name=name,
                price=price,
                stock=stock,
                images=json.dumps(images or []),
            ),
            asynchronous=False,
        )

    return _create


@pytest.fixture
def shipping_address():
    return {
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "zip_code": "560001",
        "country": "India",
        "phone": "+91-80-5550100",
    }
