"""Tests for the HTTP classifier client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from safety.classifier import HttpClassifier, ClassifierUnavailable

URL = "http://classifier.local/scan"

def fake_response(status_code: int, body=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response

@pytest.mark.asyncio
async def test_classify_sends_payload():
    """Test the request body and parsed verdict."""
    classifier = HttpClassifier(URL, api_key="secret", timeout=5)
    response = fake_response(200, {'verdict': 'infected', 'report': 'Obfuscated loader'})

    with patch.object(classifier.session, 'post', return_value=response) as post:
        verdict = await classifier.classify("Garage", "Vehicles", True)

    assert verdict.verdict == 'infected'
    assert verdict.report == 'Obfuscated loader'
    post.assert_called_once_with(
        URL,
        json={'title': "Garage", 'description': "Vehicles", 'structuralMarkerPresent': True},
        timeout=5
    )
    assert classifier.session.headers['authorization'] == "Bearer secret"

@pytest.mark.parametrize("response", [
    fake_response(503, text="overloaded"),
    fake_response(200, ValueError("not json")),
    fake_response(200, {'verdict': 'maybe', 'report': ''}),
    fake_response(200, {'verdict': 'clean'})
])
def test_bad_responses_are_unavailable(response):
    """Test status, format and verdict errors all surface as ClassifierUnavailable."""
    classifier = HttpClassifier(URL)

    with patch.object(classifier.session, 'post', return_value=response):
        with pytest.raises(ClassifierUnavailable):
            classifier._post({})

def test_transport_errors_are_unavailable():
    """Test timeouts and connection errors surface as ClassifierUnavailable."""
    classifier = HttpClassifier(URL)

    for error in (requests.exceptions.Timeout(), requests.exceptions.ConnectionError("refused")):
        with patch.object(classifier.session, 'post', side_effect=error):
            with pytest.raises(ClassifierUnavailable):
                classifier._post({})

def test_unconfigured_endpoint():
    """Test an empty endpoint never sends a request."""
    classifier = HttpClassifier("")

    with patch.object(classifier.session, 'post') as post:
        with pytest.raises(ClassifierUnavailable):
            classifier._post({})

    post.assert_not_called()
