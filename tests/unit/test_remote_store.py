"""
Unit tests for pi_dashboard/remote_store.py -- key addressing, retry with
backoff and fail-fast handling against a mocked HTTP session.
"""
import os
import sys
import json
import pytest
from unittest.mock import MagicMock

import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
os.environ.setdefault("DATABASE_URL", "")

from pi_dashboard.keys import OverrideKey
from pi_dashboard.remote_store import RemoteStore

pytestmark = pytest.mark.unit


def _response(status_code=200, payload=None, bad_json=False):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if bad_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload if payload is not None else {"status": "success"}
    return response


def _store(*responses, max_retries=3):
    session = MagicMock()
    session.request.side_effect = list(responses)
    sleeps = []
    store = RemoteStore("http://kv.example/api/", session=session, max_retries=max_retries,
                        backoff_seconds=0.5, timeout=1, sleep=sleeps.append)
    return store, session, sleeps


VALUE_KEY = OverrideKey.accomplishment("accomplishment", "2026", "st-1", "PI1", "pi1_26_1", 0)


class TestAddressing:
    def test_unit_key(self):
        store, _, _ = _store()
        address = store._address(VALUE_KEY.serialize())
        assert address["prefix"] == "accomplishment"
        assert address["year"] == "2026"
        assert address["userId"] == "st-1"
        assert address["key"] == VALUE_KEY.serialize()

    def test_global_key(self):
        store, _, _ = _store()
        address = store._address(OverrideKey.pi_order("accomplishment", "2026").serialize())
        assert address["userId"] == "global"

    def test_group_key(self):
        store, _, _ = _store()
        address = store._address(OverrideKey.hidden_for_group("accomplishment", "2025", "stations").serialize())
        assert address["userId"] == "group:stations"
        assert address["year"] == "2025"

    def test_base_url_required(self):
        with pytest.raises(ValueError):
            RemoteStore("")


class TestReadsAndWrites:
    def test_get_decodes_value(self):
        store, session, _ = _store(_response(payload={"value": json.dumps(15)}))
        assert store.get(VALUE_KEY) == 15
        method, url = session.request.call_args[0]
        assert method == "GET"
        assert url == "http://kv.example/api/kv"

    def test_get_missing_value(self):
        store, _, _ = _store(_response(payload={"value": None}))
        assert store.get(VALUE_KEY, 0) == 0

    def test_set_posts_encoded_value(self):
        store, session, _ = _store(_response())
        assert store.set(VALUE_KEY, 15) is True
        body = session.request.call_args[1]["json"]
        assert body["value"] == "15"
        assert body["userId"] == "st-1"

    def test_remove_posts_delete_flag(self):
        store, session, _ = _store(_response())
        assert store.remove(VALUE_KEY) is True
        assert session.request.call_args[1]["json"]["delete"] is True


class TestRetry:
    def test_retries_gateway_errors_with_backoff(self):
        store, session, sleeps = _store(_response(502), _response(504), _response())
        assert store.set(VALUE_KEY, 1) is True
        assert session.request.call_count == 3
        assert sleeps == [0.5, 1.0]

    def test_retries_dropped_connections(self):
        store, session, _ = _store(requests.ConnectionError("reset"), _response(payload={"value": "7"}))
        assert store.get(VALUE_KEY) == 7
        assert session.request.call_count == 2

    def test_gives_up_after_max_retries(self):
        store, session, sleeps = _store(*[_response(502)] * 3, max_retries=2)
        assert store.set(VALUE_KEY, 1) is False
        assert session.request.call_count == 3
        assert len(sleeps) == 2

    def test_failed_write_does_not_notify(self):
        store, _, _ = _store(*[_response(504)] * 2, max_retries=1)
        callback = MagicMock()
        store.subscribe(callback)
        store.set(VALUE_KEY, 1)
        callback.assert_not_called()


class TestFailFast:
    def test_server_error_is_not_retried(self):
        store, session, sleeps = _store(_response(500), _response())
        assert store.set(VALUE_KEY, 1) is False
        assert session.request.call_count == 1
        assert sleeps == []

    def test_error_status_in_body_is_not_retried(self):
        store, session, _ = _store(_response(payload={"status": "error", "message": "db down"}))
        assert store.get(VALUE_KEY, "absent") == "absent"
        assert session.request.call_count == 1

    def test_non_json_body_is_not_retried(self):
        store, session, _ = _store(_response(bad_json=True))
        assert store.set(VALUE_KEY, 1) is False
        assert session.request.call_count == 1

    def test_client_error_is_not_retried(self):
        store, session, _ = _store(_response(404))
        assert store.get(VALUE_KEY) is None
        assert session.request.call_count == 1


class TestUpload:
    def test_returns_file_url(self):
        store, session, _ = _store(_response(payload={"status": "success", "fileUrl": "http://kv.example/f/1.pdf"}))
        url = store.upload_file("mov.pdf", b"%PDF", "st-1")
        assert url == "http://kv.example/f/1.pdf"
        assert session.request.call_args[1]["data"] == {"userId": "st-1", "type": "mov"}

    def test_upload_failure_returns_none(self):
        store, _, _ = _store(_response(500))
        assert store.upload_file("mov.pdf", b"%PDF", "st-1") is None
