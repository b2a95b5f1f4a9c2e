"""Tests for sign-in routes and session management"""
import pytest
from datetime import timedelta
from fastapi import HTTPException
from unittest.mock import MagicMock, patch
from turntable_ai.model.base import utcnow
from turntable_ai.model.UserSession import UserSession
from turntable_ai.services.database import get_db_session, get_user_by_email
from turntable_ai.services.utils.session_management import (
    SESSION_COOKIE,
    create_user_session,
    end_user_session,
    validate_session,
)


class TestSessionManagement:
    """Test session tokens"""

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(HTTPException) as exc:
            await validate_session(session_token=None)
        assert exc.value.status_code == 401
        assert exc.value.detail == 'Not signed in'

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        with pytest.raises(HTTPException) as exc:
            await validate_session(session_token='nope')
        assert exc.value.detail == 'Invalid session'

    @pytest.mark.asyncio
    async def test_valid_token(self, sample_user):
        token = create_user_session(sample_user.email)
        assert await validate_session(session_token=token) == sample_user.email

    @pytest.mark.asyncio
    async def test_expired_token_is_removed(self, sample_user):
        token = create_user_session(sample_user.email)
        db = get_db_session()
        try:
            db.query(UserSession).filter_by(session_token=token).update(
                {'expires_at': utcnow() - timedelta(minutes=1)})
            db.commit()
        finally:
            db.close()

        with pytest.raises(HTTPException) as exc:
            await validate_session(session_token=token)
        assert exc.value.detail == 'Session expired. Please log in again.'

        with pytest.raises(HTTPException) as exc:
            await validate_session(session_token=token)
        assert exc.value.detail == 'Invalid session'

    @pytest.mark.asyncio
    async def test_new_session_replaces_old(self, sample_user):
        first = create_user_session(sample_user.email)
        second = create_user_session(sample_user.email)
        assert first != second
        with pytest.raises(HTTPException):
            await validate_session(session_token=first)

    @pytest.mark.asyncio
    async def test_end_session(self, sample_user):
        token = create_user_session(sample_user.email)
        end_user_session(token)
        with pytest.raises(HTTPException):
            await validate_session(session_token=token)


class TestAuthRoutes:
    """Test /auth endpoints"""

    def test_me_requires_session(self, client):
        response = client.get('/auth/me')
        assert response.status_code == 401
        assert response.json() == {'ok': False, 'error': 'Not signed in'}

    def test_me(self, signed_in_client):
        assert signed_in_client.get('/auth/me').json() == {
            'email': 'owner@cafe.com', 'name': 'Cafe Owner', 'authenticated': True}

    def test_logout(self, signed_in_client):
        response = signed_in_client.post('/auth/logout')
        assert response.json()['ok'] is True
        signed_in_client.cookies.clear()
        assert signed_in_client.get('/auth/me').status_code == 401

    def test_login_sets_state_cookie(self, client):
        flow = MagicMock()
        flow.authorization_url.return_value = ('https://accounts.google.com/o/oauth2/auth?state=s', 's')
        with patch('turntable_ai.routes.auth_routes.login_flow', return_value=flow):
            response = client.get('/auth/login', follow_redirects=False)

        assert response.status_code == 307
        assert response.headers['location'].startswith('https://accounts.google.com/')
        state = flow.authorization_url.call_args.kwargs['state']
        assert response.cookies.get('oauth_state') == state

    def test_callback_missing_code(self, client):
        response = client.get('/auth/callback')
        assert response.status_code == 400
        assert response.json()['error'] == 'Missing code'

    def test_callback_state_mismatch(self, client):
        client.cookies.set('oauth_state', 'expected')
        response = client.get('/auth/callback', params={'code': 'c', 'state': 'other'})
        assert response.status_code == 400
        assert response.json()['error'] == 'Invalid OAuth state'

    def test_callback_non_ascii_state(self, client):
        client.cookies.set('oauth_state', 'abc')
        with patch('turntable_ai.routes.auth_routes.login_flow') as login_flow:
            response = client.get('/auth/callback', params={'code': 'x', 'state': 'café'})
        assert response.status_code == 400
        assert response.json()['error'] == 'Invalid OAuth state'
        login_flow.assert_not_called()

    def test_callback_signs_in(self, client):
        flow = MagicMock()
        userinfo_service = MagicMock()
        userinfo_service.userinfo.return_value.get.return_value.execute.return_value = {
            'email': 'new@cafe.com', 'name': 'New Owner'}
        client.cookies.set('oauth_state', 'expected')

        with patch('turntable_ai.routes.auth_routes.login_flow', return_value=flow), \
                patch('turntable_ai.routes.auth_routes.build', return_value=userinfo_service):
            response = client.get('/auth/callback', params={'code': 'c', 'state': 'expected'},
                                  follow_redirects=False)

        assert response.status_code == 302
        assert response.headers['location'] == 'http://testserver/'
        flow.fetch_token.assert_called_once_with(code='c')
        assert get_user_by_email('new@cafe.com').name == 'New Owner'
        assert response.cookies.get(SESSION_COOKIE)
