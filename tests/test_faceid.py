import base64
import json
import urllib.parse

import pytest
import responses

from facegate.faceid import (
    SEARCH_URL,
    TOKEN_URL,
    USER_ADD_URL,
    USER_GET_URL,
    FaceIdClient,
    FaceIdError,
    base64_encode,
    load_image_as_bytes,
    url_encode,
)

TOKEN_BODY = {"access_token": "token", "expires_in": 2592000}


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def client(rsps):
    rsps.add(responses.GET, TOKEN_URL, json=TOKEN_BODY)
    return FaceIdClient("placeholder", "secret")


def _collector():
    results = []
    return results, results.append


def _last_body(rsps):
    return json.loads(rsps.calls[-1].request.body)


def _login(client, image):
    """Run a login and return the (successes, failures) it reported."""
    ok, on_success = _collector()
    failures, on_failed = _collector()
    client.login(image, on_success, on_failed)
    return ok, failures


def _register(client, user_id, image):
    """Run a registration and return the (successes, failures) it reported."""
    ok, on_success = _collector()
    failures, on_failed = _collector()
    client.register_user(user_id, image, on_success, on_failed)
    return ok, failures


def _check_id(client, user_id):
    """Run an id existence check and return the results it reported."""
    results, on_result = _collector()
    client.check_id_exist(user_id, on_result)
    return results


def _check_face(client, image):
    """Run a face existence check and return the results it reported."""
    results, on_result = _collector()
    client.check_face_exist(image, on_result)
    return results


EXPECTED_SEARCH_BODY = {
    "image": base64_encode(b"face"),
    "image_type": "BASE64",
    "group_id_list": "image",
}


# ---- helpers ----

def test_base64_encode_known_value():
    assert base64_encode(b"hello") == "aGVsbG8="


def test_base64_encode_round_trip():
    data = bytes(range(256))
    encoded = base64_encode(data)
    assert "\n" not in encoded
    assert base64.b64decode(encoded) == data


def test_url_encode_keeps_unreserved():
    text = "Abc-123_x.y~z"
    assert url_encode(text) == text


def test_url_encode_escapes_space():
    assert url_encode("a b") == "a%20b"


@pytest.mark.parametrize("text", ["a/b?c=d&e", "你好", "x+y%z"])
def test_url_encode_round_trip(text):
    encoded = url_encode(text)
    assert urllib.parse.unquote(encoded) == text
    assert encoded == encoded.lower() or not any(c in encoded for c in "ABCDEF%")


def test_load_image_as_bytes(tmp_path):
    path = tmp_path / "face.jpg"
    path.write_bytes(b"\xff\xd8\xff\x00data")
    assert load_image_as_bytes(str(path)) == b"\xff\xd8\xff\x00data"


def test_load_image_as_bytes_missing(tmp_path):
    with pytest.raises(FaceIdError):
        load_image_as_bytes(str(tmp_path / "missing.jpg"))


# ---- token ----

def test_constructor_fetches_token(rsps, client):
    assert client.access_token == "token"
    query = urllib.parse.parse_qs(urllib.parse.urlparse(rsps.calls[0].request.url).query)
    assert query["grant_type"] == ["client_credentials"]
    assert query["client_id"] == ["placeholder"]
    assert query["client_secret"] == ["secret"]


def test_token_http_error_raises(rsps):
    rsps.add(responses.GET, TOKEN_URL, status=500, body="oops")
    with pytest.raises(FaceIdError, match="Network error"):
        FaceIdClient("placeholder", "secret")


def test_token_missing_field_raises(rsps):
    rsps.add(responses.GET, TOKEN_URL, json={"error": "invalid_client"})
    with pytest.raises(FaceIdError, match="Get access_token failed"):
        FaceIdClient("placeholder", "secret")


def test_expired_token_is_refetched(rsps):
    rsps.add(responses.GET, TOKEN_URL, json={"access_token": "token", "expires_in": 0})
    client = FaceIdClient("placeholder", "secret")
    assert client.ensure_token_ready() is True
    token_calls = [c for c in rsps.calls if c.request.url.startswith(TOKEN_URL)]
    assert len(token_calls) == 2


def test_fresh_token_is_not_refetched(rsps, client):
    assert client.ensure_token_ready() is True
    assert len(rsps.calls) == 1


def test_unavailable_token_reports_failure(rsps):
    rsps.add(responses.GET, TOKEN_URL, json={"access_token": "token", "expires_in": 0})
    rsps.add(responses.GET, TOKEN_URL, status=500)
    client = FaceIdClient("placeholder", "secret")
    assert _login(client, b"img") == ([], ["Access token unavailable."])
    assert client.ensure_token_ready() is False
    assert all(call.request.url.startswith(TOKEN_URL) for call in rsps.calls)


# ---- login ----

def test_login_success(rsps, client):
    rsps.add(
        responses.POST,
        SEARCH_URL,
        json={"error_code": 0, "result": {"user_list": [{"user_id": "alice", "score": 95.5}]}},
    )
    assert _login(client, b"face") == (["alice"], [])
    request = rsps.calls[-1].request
    assert "access_token=token" in request.url
    assert request.headers["Content-Type"] == "application/json"
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_low_score(rsps, client):
    rsps.add(
        responses.POST,
        SEARCH_URL,
        json={"error_code": 0, "result": {"user_list": [{"user_id": "alice", "score": 80.0}]}},
    )
    assert _login(client, b"face") == ([], ["Login failed: score too low."])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_no_match(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, json={"error_code": 0, "result": {"user_list": []}})
    assert _login(client, b"face") == ([], ["No matching face found."])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_null_result(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, json={"error_code": 0, "result": None})
    assert _login(client, b"face") == ([], ["No matching face found."])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_service_error(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, json={"error_code": 222207, "error_msg": "match user is not found"})
    assert _login(client, b"face") == ([], ["match user is not found"])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_service_error_without_message(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, json={"error_code": 1})
    assert _login(client, b"face") == ([], ["unknown error"])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_http_error(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, status=500)
    assert _login(client, b"face") == ([], ["HTTP error: 500"])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_bad_json(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, body="not json")
    assert _login(client, b"face") == ([], ["JSON parse failed"])
    assert _last_body(rsps) == EXPECTED_SEARCH_BODY


def test_login_from_path(rsps, client, tmp_path):
    path = tmp_path / "face_capture.jpg"
    path.write_bytes(b"jpegbytes")
    rsps.add(
        responses.POST,
        SEARCH_URL,
        json={"error_code": 0, "result": {"user_list": [{"user_id": "bob", "score": 99}]}},
    )
    assert _login(client, str(path)) == (["bob"], [])
    assert base64.b64decode(_last_body(rsps)["image"]) == b"jpegbytes"


def test_login_from_missing_path_raises(client, tmp_path):
    with pytest.raises(FaceIdError):
        client.login(str(tmp_path / "none.jpg"), None, lambda msg: None)


# ---- register ----

def test_register_user_success(rsps, client):
    rsps.add(responses.POST, USER_ADD_URL, json={"error_code": 0, "result": {}})
    assert _register(client, "alice", b"face") == (["alice"], [])
    body = _last_body(rsps)
    assert body["group_id"] == "image"
    assert body["user_id"] == "alice"
    assert body["image_type"] == "BASE64"
    assert base64.b64decode(body["image"]) == b"face"


def test_register_user_failure(rsps, client):
    rsps.add(responses.POST, USER_ADD_URL, json={"error_code": 223105, "error_msg": "face is already exist"})
    assert _register(client, "alice", b"face") == ([], ["face is already exist"])


# ---- existence checks ----

def test_check_id_exist_true(rsps, client):
    rsps.add(responses.POST, USER_GET_URL, json={"error_code": 0, "result": {"user_list": [{"group_id": "image"}]}})
    assert _check_id(client, "alice") == [True]
    assert _last_body(rsps) == {"user_id": "alice", "group_id": "image"}


def test_check_id_exist_false_on_error(rsps, client):
    rsps.add(responses.POST, USER_GET_URL, json={"error_code": 223103, "error_msg": "user is not exist"})
    assert _check_id(client, "alice") == [False]


def test_check_id_exist_false_on_http_error(rsps, client):
    rsps.add(responses.POST, USER_GET_URL, status=503)
    assert _check_id(client, "alice") == [False]


@pytest.mark.parametrize("score, expected", [(90.0, True), (80.0, False), (10.0, False)])
def test_check_face_exist_threshold(rsps, client, score, expected):
    rsps.add(
        responses.POST,
        SEARCH_URL,
        json={"error_code": 0, "result": {"user_list": [{"user_id": "alice", "score": score}]}},
    )
    assert _check_face(client, b"face") == [expected]


def test_check_face_exist_no_users(rsps, client):
    rsps.add(responses.POST, SEARCH_URL, json={"error_code": 0, "result": {"user_list": []}})
    assert _check_face(client, b"face") == [False]