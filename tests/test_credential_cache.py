import threading
import time
import unittest
from unittest.mock import patch

import requests

from mailbridge.errors import CredentialFetchError
from mailbridge.services.credential_cache import CredentialCache

_GET = "mailbridge.services.credential_cache.requests.get"


class _FakeResponse:
    def __init__(self, status_code=200, payload=None, text="", invalid_json=False):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self._invalid_json = invalid_json

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._invalid_json:
            raise ValueError("not json")
        return self._payload


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class CredentialCacheTests(unittest.TestCase):
    def _cache(self, clock=None) -> CredentialCache:
        return CredentialCache(
            "http://localhost:3001/connect-token",
            clock=clock or _Clock(1000.0),
        )

    def test_fetches_once_and_reuses_valid_token(self):
        cache = self._cache()
        with patch(_GET, return_value=_FakeResponse(payload={"token": "tok-1", "expires_in": 60})) as mock_get:
            self.assertEqual(cache.get_token(), "tok-1")
            self.assertEqual(cache.get_token(), "tok-1")

        self.assertEqual(mock_get.call_count, 1)
        self.assertEqual(mock_get.call_args.args[0], "http://localhost:3001/connect-token")

    def test_expired_token_is_never_returned(self):
        clock = _Clock(1000.0)
        cache = self._cache(clock)
        responses = [
            _FakeResponse(payload={"token": "tok-1", "expires_in": 60}),
            _FakeResponse(payload={"token": "tok-2", "expires_in": 60}),
        ]
        with patch(_GET, side_effect=responses) as mock_get:
            self.assertEqual(cache.get_token(), "tok-1")
            clock.now = 1059.0
            self.assertEqual(cache.get_token(), "tok-1")
            clock.now = 1060.0
            self.assertEqual(cache.get_token(), "tok-2")

        self.assertEqual(mock_get.call_count, 2)

    def test_missing_expires_in_defaults_to_thirty_minutes(self):
        clock = _Clock(0.0)
        cache = self._cache(clock)
        responses = [
            _FakeResponse(payload={"token": "tok-1"}),
            _FakeResponse(payload={"token": "tok-2"}),
        ]
        with patch(_GET, side_effect=responses):
            cache.get_token()
            clock.now = 1799.0
            self.assertEqual(cache.get_token(), "tok-1")
            clock.now = 1800.0
            self.assertEqual(cache.get_token(), "tok-2")

    def test_concurrent_callers_share_a_single_fetch(self):
        cache = self._cache()
        calls = []
        release = threading.Event()
        results = []

        def _slow_get(url, timeout):
            calls.append(url)
            release.wait(timeout=2)
            return _FakeResponse(payload={"token": "tok-shared", "expires_in": 600})

        def _worker():
            results.append(cache.get_token())

        with patch(_GET, side_effect=_slow_get):
            threads = [threading.Thread(target=_worker) for _ in range(8)]
            for thread in threads:
                thread.start()
            time.sleep(0.05)
            release.set()
            for thread in threads:
                thread.join(timeout=5)

        self.assertEqual(len(calls), 1)
        self.assertEqual(results, ["tok-shared"] * 8)

    def test_invalidate_forces_refetch_and_is_idempotent(self):
        cache = self._cache()
        responses = [
            _FakeResponse(payload={"token": "tok-1", "expires_in": 600}),
            _FakeResponse(payload={"token": "tok-2", "expires_in": 600}),
        ]
        with patch(_GET, side_effect=responses) as mock_get:
            cache.get_token()
            cache.invalidate()
            cache.invalidate()
            self.assertEqual(cache.get_token(), "tok-2")

        self.assertEqual(mock_get.call_count, 2)

    def test_unreachable_issuer_raises_and_keeps_cache_empty(self):
        clock = _Clock(1000.0)
        cache = self._cache(clock)
        responses = [
            _FakeResponse(payload={"token": "tok-1", "expires_in": 10}),
            requests.ConnectionError("connection refused"),
            _FakeResponse(payload={"token": "tok-3", "expires_in": 10}),
        ]
        with patch(_GET, side_effect=responses) as mock_get:
            cache.get_token()
            clock.now = 2000.0
            with self.assertRaises(CredentialFetchError):
                cache.get_token()
            self.assertEqual(cache.get_token(), "tok-3")

        self.assertEqual(mock_get.call_count, 3)

    def test_malformed_payloads_raise_credential_fetch_error(self):
        bad_responses = [
            _FakeResponse(payload={"expires_in": 60}),
            _FakeResponse(payload={"token": ""}),
            _FakeResponse(payload=["tok"]),
            _FakeResponse(invalid_json=True, text="<html>"),
            _FakeResponse(status_code=500, text="boom"),
        ]
        for response in bad_responses:
            with self.subTest(response=response.__dict__):
                cache = self._cache()
                with patch(_GET, return_value=response):
                    with self.assertRaises(CredentialFetchError):
                        cache.get_token()


if __name__ == "__main__":
    unittest.main()
