"""
Fixtures communes: base Mongo en mémoire, client HTTP in-process, faux services externes.
"""

import pytest
import pytest_asyncio
import httpx
from mongomock_motor import AsyncMongoMockClient

import config

# Remplace la connexion Motor avant l'import des routes et services
config.client = AsyncMongoMockClient()
config.db = config.client[config.DB_NAME]


class FakeGenerator:
    """Remplace generate_text: enregistre les prompts, renvoie des réponses prédéfinies"""

    def __init__(self, responses=None):
        self.prompts = []
        self.responses = list(responses or [])

    async def __call__(self, prompt, client=None):
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("FakeGenerator has no response left")
        response = self.responses.pop(0)
        if callable(response):
            response = response(prompt)
        if isinstance(response, Exception):
            raise response
        return response


@pytest_asyncio.fixture
async def db():
    for name in await config.db.list_collection_names():
        await config.db.drop_collection(name)
    yield config.db


@pytest_asyncio.fixture
async def api_client(db):
    from server import app
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def fake_rules_generator(monkeypatch):
    """Installe un FakeGenerator pour le Rule Translator"""
    def install(*responses):
        fake = FakeGenerator(responses)
        monkeypatch.setattr("services.rule_translator.generate_text", fake)
        return fake
    return install


@pytest.fixture
def fake_message_generator(monkeypatch):
    """Installe un FakeGenerator pour les messages de campagne"""
    def install(*responses):
        fake = FakeGenerator(responses)
        monkeypatch.setattr("services.campaign_messages.generate_text", fake)
        return fake
    return install


@pytest.fixture
def vendor_calls(monkeypatch):
    """Remplace l'appel HTTP au vendor, enregistre les messages transmis"""
    calls = []

    async def fake_send(customer_id, log_id, message):
        calls.append({"customerId": customer_id, "logId": log_id, "message": message})
        return httpx.Response(200, json={"success": True})

    monkeypatch.setattr("services.campaign_dispatcher.send_to_vendor", fake_send)
    return calls

