from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as google_exceptions

from coursepilot.services.llm_service import (
    InferenceError,
    LLMService,
    MissingCredentialError,
    RateLimitError,
)
from coursepilot.services.tutor_service import TutorService


class BlockedResponse:
    @property
    def text(self):
        raise ValueError('response was blocked')


@pytest.fixture
def genai():
    with patch('coursepilot.services.llm_service.genai') as mock_genai:
        yield mock_genai


def model_of(genai):
    return genai.GenerativeModel.return_value


def test_complete_returns_text(genai):
    model_of(genai).generate_content.return_value = MagicMock(text='  hello  ')
    service = LLMService(api_key='key', model_name='gemini-test', timeout=5)

    assert service.complete('system', 'user', temperature=0.1, max_tokens=50) == '  hello  '

    genai.configure.assert_called_once_with(api_key='key')
    genai.GenerativeModel.assert_called_once_with('gemini-test', system_instruction='system')
    genai.GenerationConfig.assert_called_once_with(temperature=0.1, max_output_tokens=50)
    _, kwargs = model_of(genai).generate_content.call_args
    assert kwargs['request_options'] == {'timeout': 5}


def test_each_call_builds_its_own_model(genai):
    model_of(genai).generate_content.return_value = MagicMock(text='ok')
    service = LLMService(api_key='key')

    service.complete('a', 'x')
    service.complete('a', 'y')
    service.complete('b', 'z')

    assert genai.GenerativeModel.call_count == 3
    genai.configure.assert_called_once()


def test_tutor_turns_leave_no_per_prompt_state(genai):
    model_of(genai).generate_content.return_value = MagicMock(text='answer')
    service = LLMService(api_key='key')
    state_before = dict(vars(service))
    tutor = TutorService(service)

    for i in range(50):
        assert tutor.chat('hi', context={'lesson': f'lesson {i}'}) == 'answer'

    assert vars(service) == {**state_before, '_configured': True}
    assert genai.GenerativeModel.call_count == 50
    prompts = {call.kwargs['system_instruction'] for call in genai.GenerativeModel.call_args_list}
    assert len(prompts) == 50


def test_missing_key_raises(genai):
    service = LLMService(api_key='')
    assert service.has_credentials is False
    with pytest.raises(MissingCredentialError, match='GEMINI_API_KEY'):
        service.complete('system', 'user')
    genai.GenerativeModel.assert_not_called()


def test_quota_errors_become_rate_limit_errors(genai):
    model_of(genai).generate_content.side_effect = google_exceptions.ResourceExhausted('quota')
    with pytest.raises(RateLimitError):
        LLMService(api_key='key').complete('system', 'user')


def test_api_errors_become_inference_errors(genai):
    model_of(genai).generate_content.side_effect = google_exceptions.InternalServerError('boom')
    with pytest.raises(InferenceError) as excinfo:
        LLMService(api_key='key').complete('system', 'user')
    assert not isinstance(excinfo.value, RateLimitError)


def test_blocked_response_raises(genai):
    model_of(genai).generate_content.return_value = BlockedResponse()
    with pytest.raises(InferenceError, match='no text'):
        LLMService(api_key='key').complete('system', 'user')


def test_empty_completion_raises(genai):
    model_of(genai).generate_content.return_value = MagicMock(text='   ')
    with pytest.raises(InferenceError, match='empty'):
        LLMService(api_key='key').complete('system', 'user')


def test_transport_errors_become_inference_errors(genai):
    model_of(genai).generate_content.side_effect = ConnectionError('connection reset')
    with pytest.raises(InferenceError, match='connection reset') as excinfo:
        LLMService(api_key='key').complete('system', 'user')
    assert not isinstance(excinfo.value, RateLimitError)
    assert isinstance(excinfo.value.__cause__, ConnectionError)
