"""
Backend-specific test fixtures.

These fixtures build entity services on the in-memory store, a broker with
a pair of related services, and a FastAPI client on top of them.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient


# =============================================================================
# Entity Service Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def accounts_service(settings) -> AsyncGenerator:
    """Started "accounts" service on the in-memory store."""
    from entity_mixin.services.broker import ServiceBroker
    from entity_mixin.services.entity_service import create_entity_service

    broker = ServiceBroker()
    service = broker.register(create_entity_service("accounts", settings))
    await service.start()
    yield service
    await service.stop()


def build_related_services(settings):
    """
    A broker with "accounts" and "sessions".

    Sessions reference an account; reads and writes of sessions are
    restricted to accounts the caller can resolve.
    """
    from entity_mixin.models.entity import EntityAction, FieldSpec, FieldType
    from entity_mixin.services.broker import ParamRule, ServiceBroker
    from entity_mixin.services.entity_service import create_entity_service
    from entity_mixin.services.permissions import has_scope

    broker = ServiceBroker()
    accounts = broker.register(create_entity_service("accounts", settings))
    sessions = broker.register(
        create_entity_service(
            "sessions",
            settings,
            fields=(FieldSpec(name="account", type=FieldType.STRING, required=True),),
            scopes={"account": has_scope("accounts.get", "account")},
            default_scopes=("notDeleted", "account"),
            action_params={
                EntityAction.LIST: {"account": ParamRule(type="string")},
            },
        )
    )
    return broker, accounts, sessions


@pytest_asyncio.fixture
async def related_services(settings) -> AsyncGenerator:
    """Started broker with accounts and sessions."""
    broker, accounts, sessions = build_related_services(settings)
    await broker.start()
    yield broker, accounts, sessions
    await broker.stop()


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def api_broker(settings):
    """Broker served by the API client. Started by the app lifespan."""
    broker, _, _ = build_related_services(settings)
    return broker


@pytest.fixture
def client(settings, api_broker):
    """
    TestClient for an app serving accounts and sessions.

    Entering the client runs the lifespan, which starts the services.
    """
    from entity_mixin.main import create_app

    app = create_app(settings, broker=api_broker)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_token(make_token) -> str:
    """Token granting every permission."""
    return make_token(["*"])
