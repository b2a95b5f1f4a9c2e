"""Tests for email services"""
import pytest
from unittest.mock import MagicMock, patch
from turntable_ai.services.email_services import (
    RESEND_EMAILS_URL,
    render_review_email,
    send_email,
    send_review_email,
    wrap_html,
)


@pytest.fixture
def mock_httpx_post():
    with patch('turntable_ai.services.email_services.httpx.post') as mock_post, \
            patch('turntable_ai.services.email_services.RESEND_API_KEY', 're_test_key'):
        response = MagicMock()
        response.json.return_value = {'id': 'email_123'}
        mock_post.return_value = response
        yield mock_post


class TestSendEmail:
    """Test the transactional email client"""

    def test_fallback_without_api_key(self):
        with patch('turntable_ai.services.email_services.httpx.post') as mock_post:
            assert send_email('a@b.com', 'Hi', text='hello') == {'id': 'dev-fallback'}
        mock_post.assert_not_called()

    def test_posts_to_provider(self, mock_httpx_post):
        result = send_email('owner@cafe.com', 'Daily recap', html='<p>Hi</p>')

        assert result == {'id': 'email_123'}
        args, kwargs = mock_httpx_post.call_args
        assert args[0] == RESEND_EMAILS_URL
        assert kwargs['json']['to'] == 'owner@cafe.com'
        assert kwargs['json']['html'] == '<p>Hi</p>'
        assert kwargs['headers']['Authorization'] == 'Bearer re_test_key'
        mock_httpx_post.return_value.raise_for_status.assert_called_once()

    def test_text_only_is_wrapped_and_escaped(self, mock_httpx_post):
        send_email('owner@cafe.com', 'Alert', text='<b>labor</b> high')

        payload = mock_httpx_post.call_args.kwargs['json']
        assert '&lt;b&gt;labor&lt;/b&gt; high' in payload['html']
        assert payload['text'] == '<b>labor</b> high'

    def test_provider_error_propagates(self, mock_httpx_post):
        mock_httpx_post.return_value.raise_for_status.side_effect = RuntimeError('422')
        with pytest.raises(RuntimeError):
            send_email('owner@cafe.com', 'Alert', text='x')


class TestReviewEmail:
    """Test review alert rendering"""

    def test_subject_and_body(self):
        subject, html = render_review_email(
            'Google', 'Main St', 'Loved the <croissant>', rating=5, reviewer='Ana',
            created_time='2025-01-02T10:00:00Z', ai_reply='Thanks Ana!',
        )
        assert subject == 'New Google review for Main St'
        assert 'Loved the &lt;croissant&gt;' in html
        assert 'Rating: 5' in html
        assert 'AI-drafted reply' in html
        assert 'Thanks Ana!' in html

    def test_without_optional_parts(self):
        _, html = render_review_email('Google', 'Main St', '')
        assert '(no review text)' in html
        assert 'AI-drafted reply' not in html

    def test_wrap_keeps_inner_markup(self):
        assert '<p>inner</p>' in wrap_html('Title', '<p>inner</p>')

    def test_send_review_email(self):
        with patch('turntable_ai.services.email_services.send_email') as mock_send:
            send_review_email('owner@cafe.com', 'Google', 'Main St', 'Nice', rating=4)
        assert mock_send.call_args.kwargs['subject'] == 'New Google review for Main St'
