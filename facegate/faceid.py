"""Client for the Baidu face recognition web API."""

from __future__ import annotations

import base64
import json
import os
import time
from typing import Any, Callable, Optional, Union

import requests

TOKEN_URL = "https://aip.baidubce.com/oauth/2.0/token"
USER_ADD_URL = "https://aip.baidubce.com/rest/2.0/face/v3/faceset/user/add"
SEARCH_URL = "https://aip.baidubce.com/rest/2.0/face/v3/search"
USER_GET_URL = "https://aip.baidubce.com/rest/2.0/face/v3/faceset/user/get"

DEFAULT_GROUP_ID = "image"
SCORE_THRESHOLD = 80.0
TOKEN_SAFETY_MARGIN = 600

_URL_SAFE = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~")

SuccessCallback = Optional[Callable[[str], Any]]
FailureCallback = Callable[[str], Any]
ResultCallback = Callable[[bool], Any]


class FaceIdError(RuntimeError):
    """Raised when the face service cannot be reached or answers badly."""


def base64_encode(data: bytes) -> str:
    """Standard base64 without line breaks."""
    return base64.b64encode(bytes(data)).decode("ascii")


def url_encode(value: str) -> str:
    """Percent-encode every byte except ASCII letters, digits and ``-_.~``."""
    return "".join(
        chr(byte) if byte in _URL_SAFE else f"%{byte:02x}"
        for byte in value.encode("utf-8")
    )


def load_image_as_bytes(path: Union[str, os.PathLike]) -> bytes:
    """Read a whole image file."""
    try:
        with open(path, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise FaceIdError(f"cannot open file: {os.fspath(path)}") from exc


class FaceIdClient:
    """Registers and recognises faces in one group of the face service."""

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.secret_key = secret_key
        self.session = session if session is not None else requests.Session()
        self.group_id = DEFAULT_GROUP_ID
        self.access_token = ""
        self.token_expire_epoch = 0
        self.fetch_access_token()

    def fetch_access_token(self) -> None:
        """Obtain a new access token; raises FaceIdError on failure."""
        params = {
            "grant_type": "client_credentials",
            "client_id": self.api_key,
            "client_secret": self.secret_key,
        }
        try:
            response = self.session.get(TOKEN_URL, params=params)
        except requests.RequestException as exc:
            raise FaceIdError(f"Network error: {exc}") from exc
        if response.status_code != 200:
            raise FaceIdError(f"Network error: HTTP {response.status_code}")
        try:
            body = json.loads(response.text)
        except ValueError:
            body = None
        if not isinstance(body, dict) or "access_token" not in body:
            raise FaceIdError("Get access_token failed: " + response.text)
        self.access_token = str(body["access_token"])
        expires_in = int(body.get("expires_in", 0))
        self.token_expire_epoch = int(time.time()) + expires_in - TOKEN_SAFETY_MARGIN

    def ensure_token_ready(self) -> bool:
        """Refresh the token if it is missing or expired; report whether one is usable."""
        if not self.access_token or int(time.time()) > self.token_expire_epoch:
            try:
                self.fetch_access_token()
            except FaceIdError:
                return False
        return True

    def _post_json(self, base_url: str, payload: dict) -> dict:
        url = f"{base_url}?access_token={self.access_token}"
        body = json.dumps(payload, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
        try:
            response = self.session.post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except requests.RequestException as exc:
            raise FaceIdError("HTTP error: 0") from exc
        if response.status_code != 200:
            raise FaceIdError(f"HTTP error: {response.status_code}")
        try:
            parsed = json.loads(response.text)
        except ValueError:
            parsed = None
        if not isinstance(parsed, dict):
            raise FaceIdError("JSON parse failed")
        return parsed

    def _search(self, face_image: bytes) -> dict:
        payload = {
            "image": base64_encode(face_image),
            "image_type": "BASE64",
            "group_id_list": self.group_id,
        }
        return self._post_json(SEARCH_URL, payload)

    @staticmethod
    def _user_list(resp: dict) -> list:
        result = resp.get("result")
        if not isinstance(result, dict):
            return []
        users = result.get("user_list")
        return users if isinstance(users, list) else []

    def register_user(
        self,
        user_id: str,
        face_image: bytes,
        on_success: SuccessCallback,
        on_failed: FailureCallback,
    ) -> None:
        """Add a face under ``user_id`` to the group."""
        if not self.ensure_token_ready():
            on_failed("Access token unavailable.")
            return
        payload = {
            "image": base64_encode(face_image),
            "image_type": "BASE64",
            "group_id": self.group_id,
            "user_id": user_id,
        }
        try:
            resp = self._post_json(USER_ADD_URL, payload)
        except FaceIdError as exc:
            on_failed(str(exc))
            return
        if resp.get("error_code", 0) == 0:
            if on_success:
                on_success(user_id)
        else:
            on_failed(resp.get("error_msg", "unknown error"))

    def login(
        self,
        face_image: Union[bytes, bytearray, str, os.PathLike],
        on_success: SuccessCallback,
        on_failed: FailureCallback,
    ) -> None:
        """Find the best-matching user for a face given as bytes or as a file path."""
        if not self.ensure_token_ready():
            on_failed("Access token unavailable.")
            return
        if isinstance(face_image, (str, os.PathLike)):
            face_image = load_image_as_bytes(face_image)
            if not self.ensure_token_ready():
                on_failed("Access token unavailable.")
                return
        try:
            resp = self._search(face_image)
        except FaceIdError as exc:
            on_failed(str(exc))
            return
        if resp.get("error_code", 0) != 0:
            on_failed(resp.get("error_msg", "unknown error"))
            return
        users = self._user_list(resp)
        if not users:
            on_failed("No matching face found.")
            return
        best = users[0]
        score = float(best.get("score", 0.0))
        if score > SCORE_THRESHOLD:
            if on_success:
                on_success(str(best["user_id"]))
        else:
            on_failed("Login failed: score too low.")

    def check_id_exist(self, user_id: str, on_result: ResultCallback) -> None:
        """Report whether ``user_id`` is registered in the group."""
        if not self.ensure_token_ready():
            on_result(False)
            return
        payload = {"user_id": user_id, "group_id": self.group_id}
        try:
            resp = self._post_json(USER_GET_URL, payload)
        except FaceIdError:
            on_result(False)
            return
        on_result(resp.get("error_code", 0) == 0 and bool(self._user_list(resp)))

    def check_face_exist(self, face_image: bytes, on_result: ResultCallback) -> None:
        """Report whether a face matches someone in the group well enough."""
        if not self.ensure_token_ready():
            on_result(False)
            return
        try:
            resp = self._search(face_image)
        except FaceIdError:
            on_result(False)
            return
        if resp.get("error_code", 0) != 0:
            on_result(False)
            return
        users = self._user_list(resp)
        if not users:
            on_result(False)
            return
        on_result(float(users[0].get("score", 0.0)) > SCORE_THRESHOLD)