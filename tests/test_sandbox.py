import json
import logging
import sys
import time
from pathlib import Path

import pytest

from sms_template.signing import calculate_signature
from sms_template.template_api_caller import (
    AddTemplate,
    Credential,
    DelTemplate,
    GetTemplate,
    ModTemplate,
    TemplatePage,
    build_get_request,
)
from sms_template.transport import HttpTransport

# Make the sandbox importable the way it runs (from the server directory)
SERVER_DIR = Path(__file__).resolve().parent.parent / "server"
sys.path.insert(0, str(SERVER_DIR))

import template_sandbox  # noqa: E402
from blueprints import templates  # noqa: E402
from src import signature_check  # noqa: E402

APP_ID = "1400000000"
APP_KEY = "sandbox-key"


class FlaskTransport(HttpTransport):
    """Routes requests into the Flask test client instead of the network"""

    def __init__(self, test_client):
        super().__init__()
        self.test_client = test_client

    def send(self, request):
        response = self.test_client.post(request.path, query_string=request.params, json=request.body)
        return response.get_json()


@pytest.fixture
def app(tmp_path: Path, monkeypatch):
    apps_path = tmp_path / "apps.json"
    apps_path.write_text(json.dumps({APP_ID: APP_KEY}), encoding="utf-8")
    monkeypatch.setattr(signature_check, "APPS_PATH", str(apps_path))
    templates.reset_templates()

    # create_app() reconfigures the root logger; put it back afterwards
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        yield template_sandbox.create_app()
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


@pytest.fixture
def transport(app):
    with FlaskTransport(app.test_client()) as t:
        yield t


@pytest.fixture
def credential():
    return Credential(APP_ID, APP_KEY)


def test_health(app):
    assert app.test_client().get("/health").get_json() == {"status": "healthy"}


def test_template_lifecycle(transport, credential):
    added = AddTemplate(credential, transport).add("test", 0, "hello {1}", "greeting", 0).result()
    assert added["result"] == 0
    tpl_id = added["data"]["id"]
    assert added["data"]["text"] == "hello {1}"

    modified = ModTemplate(credential, transport).modify(None, None, "hi {1}", None, "1", tpl_id).result()
    assert modified["result"] == 0
    assert modified["data"]["type"] == 1

    found = GetTemplate(credential, transport).get([tpl_id]).result()
    assert found["count"] == 1
    assert found["data"][0]["text"] == "hi {1}"

    deleted = DelTemplate(credential, transport).delete([tpl_id]).result()
    assert deleted == {"result": 0, "errmsg": ""}

    missing = DelTemplate(credential, transport).delete([tpl_id]).result()
    assert missing["result"] == templates.RESULT_TEMPLATE_NOT_FOUND


def test_paging(transport, credential):
    add = AddTemplate(credential, transport)
    for n in range(3):
        add.add(None, None, f"text {n}", None, 0).result()

    page = GetTemplate(credential, transport).get(tpl_page=TemplatePage(offset=1, max=5)).result()
    assert page["total"] == 3
    assert page["count"] == 2
    assert [t["text"] for t in page["data"]] == ["text 1", "text 2"]


def test_wrong_key_fails_signature_check(transport):
    bad = Credential(APP_ID, "not-the-key")
    response = GetTemplate(bad, transport).get([1]).result()
    assert response["result"] == templates.RESULT_SIG_CHECK_FAILED


def test_unknown_app(transport):
    response = GetTemplate(Credential("999", APP_KEY), transport).get([1]).result()
    assert response["result"] == templates.RESULT_SIG_CHECK_FAILED


def test_replayed_request_is_rejected(app, credential):
    client = app.test_client()
    request = build_get_request(credential, [1])

    first = client.post(request.path, query_string=request.params, json=request.body).get_json()
    replay = client.post(request.path, query_string=request.params, json=request.body).get_json()

    assert first["result"] == 0
    assert replay["result"] == templates.RESULT_SIG_CHECK_FAILED


def test_stale_time_is_rejected(app):
    client = app.test_client()
    stale = int(time.time()) - signature_check.MAX_CLOCK_SKEW_SECONDS - 60
    body = {"sig": calculate_signature(APP_KEY, 7, stale), "time": stale, "tpl_id": [1]}

    response = client.post("/v5/tlssmssvr/get_template",
                           query_string={"sdkappid": APP_ID, "random": 7}, json=body).get_json()
    assert response["result"] == templates.RESULT_SIG_CHECK_FAILED


def test_malformed_requests(app, transport, credential):
    client = app.test_client()
    no_json = client.post("/v5/tlssmssvr/get_template?sdkappid=1&random=1", data="nope").get_json()
    assert no_json["result"] == templates.RESULT_BAD_REQUEST

    # Signed but with neither selector
    response = GetTemplate(credential, transport).get().result()
    assert response["result"] == templates.RESULT_BAD_REQUEST


def test_string_ids_are_accepted(transport, credential):
    added = AddTemplate(credential, transport).add(None, None, "hello {1}", None, 0).result()
    tpl_id = str(added["data"]["id"])

    found = GetTemplate(credential, transport).get([tpl_id]).result()
    assert found["count"] == 1

    modified = ModTemplate(credential, transport).modify(None, None, "hi {1}", None, 0, tpl_id).result()
    assert modified["result"] == 0

    deleted = DelTemplate(credential, transport).delete([tpl_id]).result()
    assert deleted == {"result": 0, "errmsg": ""}


def test_non_numeric_ids_are_malformed(transport, credential):
    assert GetTemplate(credential, transport).get(["abc"]).result()["result"] == templates.RESULT_BAD_REQUEST
    assert DelTemplate(credential, transport).delete(["abc"]).result()["result"] == templates.RESULT_BAD_REQUEST
    modified = ModTemplate(credential, transport).modify(None, None, "t", None, 0, "abc").result()
    assert modified["result"] == templates.RESULT_BAD_REQUEST
