"""
Pytest configuration and shared fixtures for turntable_ai tests.
"""
import pytest
import sys
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

# Set required environment variables before importing app modules
os.environ['GROQ_API_KEY'] = 'test_groq_api_key_for_testing'
os.environ['DATABASE_URL'] = 'sqlite:///./test_turntable.db'
os.environ['SITE_URL'] = 'http://testserver'
os.environ['CRON_SECRET'] = 'test-cron-secret'
os.environ['STRIPE_SECRET_KEY'] = 'sk_test_123'
os.environ['STRIPE_WEBHOOK_SECRET'] = 'whsec_test_123'
os.environ['RESEND_API_KEY'] = ''
os.environ['GOOGLE_LOGIN_CLIENT_ID'] = 'login-client-id'
os.environ['GOOGLE_LOGIN_CLIENT_SECRET'] = 'login-client-secret'
os.environ['GOOGLE_INTEGRATIONS_CLIENT_ID'] = 'integrations-client-id'
os.environ['GOOGLE_INTEGRATIONS_CLIENT_SECRET'] = 'integrations-client-secret'
os.environ['GMAIL_YELP_CLIENT_ID'] = 'gmail-client-id'
os.environ['GMAIL_YELP_CLIENT_SECRET'] = 'gmail-client-secret'

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def mock_chatgroq():
    """Mock ChatGroq LLM client to avoid API calls during tests"""
    with patch('turntable_ai.services.llm_services.ChatGroq') as mock_groq:
        mock_instance = MagicMock()
        mock_instance.invoke.return_value.content = 'Test AI generated reply'
        mock_groq.return_value = mock_instance
        yield mock_instance


@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate every table so each test starts from an empty database"""
    from turntable_ai.model.base import Base
    from turntable_ai.services.database import engine
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest.fixture(scope='session', autouse=True)
def remove_test_database():
    yield
    test_db = Path('test_turntable.db')
    if test_db.exists():
        test_db.unlink()


@pytest.fixture
def client():
    """Test client with a limiter loose enough not to interfere"""
    from fastapi.testclient import TestClient
    from turntable_ai.app import create_app
    from turntable_ai.services.utils.rate_limiter import FixedWindowRateLimiter
    return TestClient(create_app(rate_limiter=FixedWindowRateLimiter(limit=1000)))


@pytest.fixture
def sample_user():
    from turntable_ai.services.database import store_user
    return store_user('owner@cafe.com', 'Cafe Owner')


@pytest.fixture
def signed_in_client(client, sample_user):
    """Client carrying a valid session cookie for ``sample_user``"""
    from turntable_ai.services.utils.session_management import SESSION_COOKIE, create_user_session
    token = create_user_session(sample_user.email)
    client.cookies.set(SESSION_COOKIE, token)
    return client


@pytest.fixture
def sample_review():
    """A Google review payload as the Business Profile API returns it"""
    return {
        'reviewId': 'rev_1',
        'name': 'accounts/1/locations/1/reviews/rev_1',
        'reviewer': {'displayName': 'Jamie'},
        'starRating': 'FOUR',
        'comment': 'Great latte, slow service.',
        'createTime': '2025-01-02T10:00:00Z',
        'updateTime': '2025-01-02T10:00:00.123456789Z',
    }
