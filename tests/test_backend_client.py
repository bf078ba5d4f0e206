"""
Tests for the backend HTTP client: chanda/backend.py

The requests session is replaced by a MagicMock so no network is touched;
responses are real ``requests.Response`` objects with canned bodies.
"""
import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from chanda.backend import BackendClient, _error_detail
from chanda.errors import (
    BackendClientError,
    BackendServerError,
    BackendUnavailable,
)
from chanda.models import ContributionRecord
from chanda.session import SessionContext
from utils.config import AppConfig


def _response(status=200, body=None, text=None):
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "Reason"
    resp.encoding = "utf-8"
    if body is not None:
        resp._content = json.dumps(body).encode()
    else:
        resp._content = (text or "").encode()
    return resp


@pytest.fixture()
def manager():
    return MagicMock()


@pytest.fixture()
def client(manager):
    return BackendClient("http://backend.test/", timeout=3.0, session_manager=manager)


def _sent(manager):
    args, kwargs = manager.session.request.call_args
    return args, kwargs


class TestTransport:
    def test_base_url_trailing_slash(self, client, manager):
        manager.session.request.return_value = _response(body=[])
        client.list_tolas()
        args, kwargs = _sent(manager)
        assert args == ("GET", "http://backend.test/api/v1/tolas")
        assert kwargs["timeout"] == 3.0

    def test_bearer_token_from_context(self, client, manager):
        manager.session.request.return_value = _response(body=[])
        client.list_tolas(SessionContext(session_id="s1", token="abc"))
        _, kwargs = _sent(manager)
        assert kwargs["headers"] == {"Authorization": "Bearer abc"}

    def test_no_token_no_header(self, client, manager):
        manager.session.request.return_value = _response(body=[])
        client.list_tolas(SessionContext(session_id="s1"))
        _, kwargs = _sent(manager)
        assert kwargs["headers"] == {}

    def test_connection_error(self, client, manager):
        manager.session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(BackendUnavailable):
            client.list_tolas()

    def test_timeout(self, client, manager):
        manager.session.request.side_effect = requests.Timeout("slow")
        with pytest.raises(BackendUnavailable):
            client.get_dashboard()

    def test_4xx(self, client, manager):
        manager.session.request.return_value = _response(404, {"detail": "Tola not found"})
        with pytest.raises(BackendClientError) as excinfo:
            client.list_tola_contributors(99)
        assert excinfo.value.status_code == 404
        assert excinfo.value.detail == "Tola not found"

    def test_5xx(self, client, manager):
        manager.session.request.return_value = _response(500, text="Internal Server Error")
        with pytest.raises(BackendServerError) as excinfo:
            client.list_contributions()
        assert excinfo.value.status_code == 500
        assert excinfo.value.detail == "Internal Server Error"

    def test_invalid_json(self, client, manager):
        manager.session.request.return_value = _response(200, text="<html>")
        with pytest.raises(BackendUnavailable):
            client.list_tolas()

    def test_unexpected_shape(self, client, manager):
        manager.session.request.return_value = _response(body={"tolas": []})
        with pytest.raises(BackendUnavailable):
            client.list_tolas()

    def test_close(self, client, manager):
        client.close()
        manager.close.assert_called_once()


class TestErrorDetail:
    def test_detail_list(self):
        resp = _response(422, {"detail": [{"msg": "field required"}, {"msg": "bad date"}]})
        assert _error_detail(resp) == "field required; bad date"

    def test_message_key(self):
        assert _error_detail(_response(400, {"message": "Duplicate receipt"})) == "Duplicate receipt"

    def test_plain_text(self):
        assert _error_detail(_response(502, text=" Bad gateway ")) == "Bad gateway"


class TestEndpoints:
    def test_list_tolas(self, client, manager):
        manager.session.request.return_value = _response(body=[
            {"id": 1, "tola_name": "North Tola", "village": {"id": 1, "name": "Rampur"},
             "extra": "ignored"},
        ])
        tolas = client.list_tolas()
        assert tolas[0].tola_name == "North Tola"
        assert tolas[0].village.name == "Rampur"

    def test_list_tola_contributors(self, client, manager):
        manager.session.request.return_value = _response(body=[
            {"id": 11, "name": "Amit Singh", "pledge_amount": 500},
        ])
        contributors = client.list_tola_contributors(1)
        args, _ = _sent(manager)
        assert args[1].endswith("/api/v1/tolas/1/contributors")
        assert contributors[0].option_label == "Amit Singh - ₹ 500"

    def test_create_contribution(self, client, manager):
        manager.session.request.return_value = _response(201, {"id": 55, "amount": 500})
        record = client.create_contribution({"amount": 500})
        args, kwargs = _sent(manager)
        assert args == ("POST", "http://backend.test/api/v1/contributions")
        assert kwargs["json"] == {"amount": 500}
        assert record.id == 55

    def test_create_contribution_empty_body(self, client, manager):
        manager.session.request.return_value = _response(201)
        assert client.create_contribution({"amount": 1}) == ContributionRecord()

    def test_get_payments(self, client, manager):
        manager.session.request.return_value = _response(body={
            "contributors": [{"contributor_id": 1, "contributor_name": "A",
                              "pledged_amount": 100, "paid_amount": 0, "percent_diff": -100}],
            "summary": {"total_pledged": 100, "total_paid": 0, "total_percent_diff": -100},
        })
        report = client.get_payments(3)
        args, _ = _sent(manager)
        assert args[1].endswith("/api/v1/contributions/tola/3/payments")
        assert report.contributors[0].is_paid is False
        assert report.summary.total_pledged == 100

    def test_update_contributor_uses_put(self, client, manager):
        manager.session.request.return_value = _response(body={"id": 11})
        client.update_contributor(11, {"name": "Amit"})
        args, kwargs = _sent(manager)
        assert args == ("PUT", "http://backend.test/api/v1/contributors/11")
        assert kwargs["json"] == {"name": "Amit"}

    def test_delete_expense_no_content(self, client, manager):
        manager.session.request.return_value = _response(204)
        assert client.delete_expense(7) is None
        args, _ = _sent(manager)
        assert args == ("DELETE", "http://backend.test/api/v1/expenses/7")

    def test_login(self, client, manager):
        manager.session.request.return_value = _response(body={
            "access_token": "jwt", "token_type": "bearer"})
        result = client.login("admin", "secret123")
        _, kwargs = _sent(manager)
        assert kwargs["json"] == {"username": "admin", "password": "secret123"}
        assert kwargs["headers"] == {}
        assert result.access_token == "jwt"


class TestFromConfig:
    def test_settings_applied(self):
        config = AppConfig.from_dict({"api_url": "http://api.local", "http_timeout": 4.0,
                                      "http_retries": 2})
        client = BackendClient.from_config(config)
        assert client.base_url == "http://api.local"
        assert client.timeout == 4.0
        assert client._manager.retry_strategy.max_retries == 2
        client.close()
