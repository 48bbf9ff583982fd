import pytest
from datetime import datetime, timedelta
from typing import AsyncGenerator, Callable, Awaitable, Dict, List, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.ai.risk_assessment import RiskAssessmentError, get_risk_assessment_client
from app.api.api_v1.endpoints.chat import get_typing_registry
from app.core.database import build_engine, build_session_factory, create_tables, get_db
from app.db.seed import seed_mock_data
from app.schemas.risk import RiskAssessmentRequest, RiskAssessmentResult, RiskLevel
from app.services.chat_service import TypingIndicatorRegistry
from main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Deterministic clock for services that take a ``clock`` callable."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeRiskAssessmentClient:
    """Records requests and answers with a canned result or error."""

    def __init__(self, result: Optional[RiskAssessmentResult] = None, error: Optional[Exception] = None):
        self.result = result or RiskAssessmentResult(
            risk_level=RiskLevel.medium, confidence_score=0.8, reasoning="Standard individual profile."
        )
        self.error = error
        self.requests: List[RiskAssessmentRequest] = []

    async def suggest_risk_level(self, request: RiskAssessmentRequest) -> RiskAssessmentResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory database per test."""
    test_engine = build_engine(TEST_DATABASE_URL)
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_db(db: AsyncSession) -> AsyncSession:
    await seed_mock_data(db)
    return db


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def typing_registry(clock) -> TypingIndicatorRegistry:
    return TypingIndicatorRegistry(ttl_seconds=3, clock=clock)


@pytest.fixture
def risk_client() -> FakeRiskAssessmentClient:
    return FakeRiskAssessmentClient()


@pytest.fixture
async def client(session_factory, seeded_db, risk_client, typing_registry) -> AsyncGenerator[AsyncClient, None]:
    """API client over the seeded test database."""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_risk_assessment_client] = lambda: risk_client
    app.dependency_overrides[get_typing_registry] = lambda: typing_registry
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client: AsyncClient) -> Callable[[str], Awaitable[Dict[str, str]]]:
    """Log in by e-mail and return the authorization headers."""
    async def _login(email: str) -> Dict[str, str]:
        response = await client.post("/api/v1/auth/login", json={"email": email})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
def failing_risk_client() -> FakeRiskAssessmentClient:
    return FakeRiskAssessmentClient(error=RiskAssessmentError("Risk assessment failed. Please try again."))


@pytest.fixture
def make_risk_client() -> Callable[..., FakeRiskAssessmentClient]:
    return FakeRiskAssessmentClient


@pytest.fixture
def test_password() -> str:
    """Return a test password."""
    return "test_password123"


@pytest.fixture
def test_user_data(test_password):
    """Return test user data."""
    return {
        "email": "new.client@example.com",
        "password": test_password,
        "name": "New Client"
    }
