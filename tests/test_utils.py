"""Tests for retry, HTTP helpers and log masking"""
import pytest
from unittest.mock import AsyncMock
from turntable_ai.services.utils.http_utils import clean_text, decode_state, encode_state, secret_matches
from turntable_ai.services.utils.logger_config import mask_email
from turntable_ai.services.utils.retry import retry_with_linear_backoff


class TestRetryWithLinearBackoff:
    """Test the async retry helper"""

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        func = AsyncMock(return_value='done')
        sleep = AsyncMock()
        assert await retry_with_linear_backoff(func, attempts=3, sleep=sleep) == 'done'
        func.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_linear_delays_between_attempts(self):
        func = AsyncMock(side_effect=[ConnectionError('a'), ConnectionError('b'), 'ok'])
        sleep = AsyncMock()
        result = await retry_with_linear_backoff(func, attempts=3, base_delay=2, sleep=sleep)
        assert result == 'ok'
        assert [c.args[0] for c in sleep.await_args_list] == [2, 4]

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self):
        func = AsyncMock(side_effect=ConnectionError('down'))
        sleep = AsyncMock()
        with pytest.raises(ConnectionError, match='down'):
            await retry_with_linear_backoff(func, attempts=3, sleep=sleep)
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_unlisted_exception_is_not_retried(self):
        func = AsyncMock(side_effect=KeyError('nope'))
        with pytest.raises(KeyError):
            await retry_with_linear_backoff(func, attempts=3, retry_on=(ConnectionError,), sleep=AsyncMock())
        func.assert_awaited_once()


class TestHttpUtils:
    """Test state codec and text cleaning"""

    def test_state_round_trip(self):
        state = encode_state({'u': 7, 'e': 'owner@cafe.com'})
        assert '=' not in state
        assert decode_state(state) == {'u': 7, 'e': 'owner@cafe.com'}

    def test_decode_garbage_state(self):
        with pytest.raises(ValueError):
            decode_state('%%%not-base64%%%')

    def test_decode_non_object_state(self):
        with pytest.raises(ValueError):
            decode_state('WzEsMl0')  # [1,2]

    def test_secret_matches(self):
        assert secret_matches('s3cret', 's3cret') is True
        assert secret_matches('s3cret', 'other') is False
        assert secret_matches('café', 'abc') is False
        assert secret_matches('', '') is False
        assert secret_matches(None, 's3cret') is False

    def test_clean_text(self):
        assert clean_text('  hello  ', 3) == 'hel'
        assert clean_text(None, 10) == ''
        assert clean_text(42, 10) == ''

    def test_mask_email(self):
        assert mask_email('owner@cafe.com') == 'owner@XXX'
        assert mask_email(None) == 'unknown'
