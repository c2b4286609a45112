from unittest import mock

import pytest
import requests

from site_factory.suggestion_client import LLMSuggestionClient
from site_factory.utils import RemoteSuggestionUnavailable

REQUEST = {"description": "handmade jewelry", "archetype": "commerce", "slotKind": "headline"}


def _hanging_session():
    session = mock.Mock(spec=requests.Session)
    session.post.side_effect = requests.Timeout("read timed out")
    return session


def test_hung_chat_endpoint_leaves_budget_for_gemini():
    session = _hanging_session()
    client = LLMSuggestionClient(api_key="chat-key", gemini_api_key="gemini-key", timeout=8, session=session)

    with mock.patch.object(LLMSuggestionClient, "_call_gemini", return_value="Gemini headline") as gemini:
        assert client.suggest(REQUEST) == "Gemini headline"

    assert session.post.call_args[1]["timeout"] == 4
    gemini.assert_called_once()


def test_single_backend_gets_the_whole_budget():
    assert LLMSuggestionClient(api_key="chat-key", gemini_api_key=None, timeout=8).backend_timeout() == 8
    assert LLMSuggestionClient(api_key=None, gemini_api_key="gemini-key", timeout=8).backend_timeout() == 8


def test_no_backend_answered():
    client = LLMSuggestionClient(api_key="chat-key", gemini_api_key=None, timeout=8, session=_hanging_session())
    with pytest.raises(RemoteSuggestionUnavailable):
        client.suggest(REQUEST)
