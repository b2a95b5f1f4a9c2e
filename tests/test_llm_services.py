"""Tests for LLM services"""
import pytest
from unittest.mock import MagicMock, patch
from turntable_ai.services.llm_services import (
    DEFAULT_REPLY,
    LLMConfigError,
    analyze_review,
    build_reply_prompt,
    extract_text,
    generate_review_reply,
    normalize_analysis,
)


class TestExtractText:
    """Test the response text fallback chain"""

    def test_direct_output_text(self):
        assert extract_text({'output_text': '  hi there '}) == 'hi there'

    def test_first_text_block(self):
        payload = {'output': [{'content': [{'type': 'x'}, {'text': ' from block '}]}]}
        assert extract_text(payload) == 'from block'

    def test_output_text_block_when_no_text_block(self):
        payload = {'output': [{'content': [{'output_text': 'alt'}]}]}
        assert extract_text(payload) == 'alt'

    def test_chat_message_content(self):
        message = MagicMock()
        message.content = 'message text'
        assert extract_text(message) == 'message text'

    def test_empty_when_nothing_usable(self):
        assert extract_text({'output': []}) == ''
        assert extract_text(None) == ''


class TestReviewReply:
    """Test reply prompt building and generation"""

    def test_prompt_includes_options(self):
        prompt = build_reply_prompt(
            'Cold coffee',
            rating=2,
            platform='Google',
            business='Bean There',
            city='Austin',
            length='short',
            style_guide='- Always sign off as the Bean team',
            variant_flavor='warmer',
        )
        assert 'called "Bean There"' in prompt
        assert 'in Austin' in prompt
        assert '1-2 concise sentences' in prompt
        assert 'Bean team' in prompt
        assert 'extra warm' in prompt
        assert 'Cold coffee' in prompt

    def test_policies_can_be_disabled(self):
        prompt = build_reply_prompt('ok', policy_apologize=False, policy_no_admission=False,
                                    policy_offer_remedy_if_low=False)
        assert 'Apologize' not in prompt
        assert 'admit fault' not in prompt
        assert 'Stay brand-safe' in prompt

    def test_generate_uses_model_output(self, mock_chatgroq):
        assert generate_review_reply('Lovely scones') == 'Test AI generated reply'
        mock_chatgroq.invoke.assert_called_once()

    def test_empty_model_output_falls_back(self, mock_chatgroq):
        mock_chatgroq.invoke.return_value.content = '   '
        assert generate_review_reply('Lovely scones') == DEFAULT_REPLY

    def test_missing_key_raises(self):
        with patch('turntable_ai.services.llm_services.GROQ_API_KEY', None):
            with pytest.raises(LLMConfigError):
                generate_review_reply('Lovely scones')


class TestReviewAnalysis:
    """Test analysis normalization"""

    def test_normalize_clamps_and_cleans(self):
        result = normalize_analysis({
            'detectedRating': '4.6',
            'toneLabel': '  Happy ',
            'lengthSuggestion': 'huge',
            'sentimentSummary': '',
            'issues': ['slow', 3, '  '],
            'languageName': 'English',
        })
        assert result == {
            'detectedRating': 5,
            'toneLabel': 'Happy',
            'lengthSuggestion': None,
            'sentimentSummary': None,
            'issues': ['slow'],
            'languageName': 'English',
        }

    def test_out_of_range_rating_is_null(self):
        assert normalize_analysis({'detectedRating': 9})['detectedRating'] is None

    def test_analyze_parses_fenced_json(self, mock_chatgroq):
        mock_chatgroq.invoke.return_value.content = (
            '```json\n{"detectedRating": 2, "toneLabel": "Angry", "lengthSuggestion": "medium", '
            '"sentimentSummary": "Upset about wait", "issues": ["wait"], "languageName": "English"}\n```'
        )
        result = analyze_review('Waited 40 minutes')
        assert result['detectedRating'] == 2
        assert result['issues'] == ['wait']
        assert result['lengthSuggestion'] == 'medium'
