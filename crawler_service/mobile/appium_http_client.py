from __future__ import annotations

import base64
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests


class AppiumHTTPError(RuntimeError):
    def __init__(
        self,
        *,
        message: str,
        method: str,
        url: str,
        status_code: Optional[int] = None,
        response_json: Optional[dict[str, Any]] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_json = response_json
        self.response_text = response_text


class ElementNotFoundError(RuntimeError):
    def __init__(self, *, using: str, value: str) -> None:
        super().__init__(f"No elements found for locator using={using!r} value={value!r}")
        self.using = using
        self.value = value


@dataclass(frozen=True)
class WebDriverElementRef:
    element_id: str


_W3C_ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
_RECT_KEYS = {"x", "y", "width", "height"}


def _extract_webdriver_value(payload: dict[str, Any]) -> Any:
    # W3C WebDriver typically wraps in {"value": ...}
    if "value" in payload:
        return payload["value"]
    return payload


def _extract_element_id(element_obj: Any) -> str:
    if not isinstance(element_obj, dict):
        raise ValueError(f"Unexpected element payload type: {type(element_obj)}")

    if element_obj.get(_W3C_ELEMENT_KEY):
        return str(element_obj[_W3C_ELEMENT_KEY])

    # Legacy JSONWire key
    if element_obj.get("ELEMENT"):
        return str(element_obj["ELEMENT"])

    raise ValueError(f"Could not extract element id from payload keys: {list(element_obj.keys())}")


def _pointer_swipe_actions(*, x1: int, y1: int, x2: int, y2: int, duration_ms: int) -> dict[str, Any]:
    return {
        "actions": [
            {
                "type": "pointer",
                "id": "finger1",
                "parameters": {"pointerType": "touch"},
                "actions": [
                    {"type": "pointerMove", "duration": 0, "x": x1, "y": y1, "origin": "viewport"},
                    {"type": "pointerDown", "button": 0},
                    {"type": "pointerMove", "duration": duration_ms, "x": x2, "y": y2, "origin": "viewport"},
                    {"type": "pointerUp", "button": 0},
                ],
            }
        ]
    }


class AppiumHTTPClient:
    """
    Appium client speaking the WebDriver HTTP protocol directly.

    This is the device capability set the crawler consumes: element lookup,
    geometry/attribute reads, touch gestures, pauses, screenshots and screen
    recordings. It deliberately avoids the Appium Python client so the only
    transport dependency is `requests`.
    """

    def __init__(self, server_url: str, *, timeout_s: float = 30.0) -> None:
        if not server_url:
            raise ValueError("server_url is required")
        self.server_url = server_url.rstrip("/")
        self.timeout_s = timeout_s
        self.session_id: Optional[str] = None
        self._session = requests.Session()

    def _request(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        url = f"{self.server_url}{path}"
        try:
            response = self._session.request(method, url, json=json, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise AppiumHTTPError(
                message=f"Failed to call Appium server: {e}",
                method=method,
                url=url,
            ) from e

        response_text = None
        response_json: Optional[dict[str, Any]] = None
        try:
            response_json = response.json()
        except ValueError:
            response_text = response.text

        if response.status_code >= 400:
            details = None
            if response_json is not None:
                value = _extract_webdriver_value(response_json)
                if isinstance(value, dict):
                    details = value.get("error") or value.get("message")
            raise AppiumHTTPError(
                message=f"Appium HTTP {response.status_code} for {method} {path}"
                + (f": {details}" if details else ""),
                method=method,
                url=url,
                status_code=response.status_code,
                response_json=response_json,
                response_text=response_text,
            )

        if response_json is None:
            raise AppiumHTTPError(
                message=f"Appium returned non-JSON response for {method} {path}",
                method=method,
                url=url,
                status_code=response.status_code,
                response_text=response_text,
            )

        return response_json

    def _session_value(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> Any:
        self._require_session()
        response = self._request(method, f"/session/{self.session_id}{path}", json=json)
        return _extract_webdriver_value(response)

    def _shape_error(self, *, method: str, path: str, expected: str, value: Any) -> AppiumHTTPError:
        return AppiumHTTPError(
            message=f"Unexpected {path} response shape (expected {expected})",
            method=method,
            url=f"{self.server_url}/session/{self.session_id}{path}",
            response_json={"value": value},
        )

    def _rect(self, method: str, path: str) -> dict[str, int]:
        value = self._session_value(method, path)
        if not isinstance(value, dict):
            raise self._shape_error(method=method, path=path, expected="object", value=value)
        if not _RECT_KEYS.issubset(set(value.keys())):
            raise self._shape_error(method=method, path=path, expected=f"keys {sorted(_RECT_KEYS)}", value=value)
        return {k: int(value[k]) for k in _RECT_KEYS}

    def _base64_bytes(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> bytes:
        value = self._session_value(method, path, json=json)
        if not isinstance(value, str):
            raise self._shape_error(method=method, path=path, expected="base64 string", value=value)
        try:
            return base64.b64decode(value)
        except (ValueError, TypeError) as e:
            raise AppiumHTTPError(
                message=f"Failed to decode base64 payload from {path}: {e}",
                method=method,
                url=f"{self.server_url}/session/{self.session_id}{path}",
            ) from e

    def create_session(self, session_payload: dict[str, Any]) -> str:
        """
        Create an Appium session.

        `session_payload` must be a valid WebDriver session creation payload, e.g.
          {"capabilities": {"alwaysMatch": {...}, "firstMatch": [{}]}}
        """
        if not isinstance(session_payload, dict) or not session_payload:
            raise ValueError("session_payload must be a non-empty dict")

        response = self._request("POST", "/session", json=session_payload)

        # Common shapes:
        # - {"value": {"sessionId": "...", "capabilities": {...}}}
        # - {"sessionId": "...", "value": {...}}
        value = _extract_webdriver_value(response)
        session_id = None
        if isinstance(value, dict):
            session_id = value.get("sessionId")
        session_id = session_id or response.get("sessionId")

        if not session_id:
            raise AppiumHTTPError(
                message="Appium did not return a sessionId in the create_session response",
                method="POST",
                url=f"{self.server_url}/session",
                response_json=response,
            )

        self.session_id = str(session_id)
        return self.session_id

    def delete_session(self) -> None:
        if not self.session_id:
            return
        session_id = self.session_id
        try:
            self._request("DELETE", f"/session/{session_id}")
        finally:
            self.session_id = None

    def get_page_source(self) -> str:
        value = self._session_value("GET", "/source")
        if not isinstance(value, str):
            raise self._shape_error(method="GET", path="/source", expected="string", value=value)
        return value

    def get_screenshot_png_bytes(self) -> bytes:
        return self._base64_bytes("GET", "/screenshot")

    def get_window_rect(self) -> dict[str, int]:
        return self._rect("GET", "/window/rect")

    def find_elements(self, *, using: str, value: str) -> list[WebDriverElementRef]:
        if not using or not value:
            raise ValueError("'using' and 'value' are required to find elements")
        payload = self._session_value("POST", "/elements", json={"using": using, "value": value})
        if not isinstance(payload, list):
            raise self._shape_error(method="POST", path="/elements", expected="list", value=payload)
        return [WebDriverElementRef(element_id=_extract_element_id(item)) for item in payload]

    def find_element(self, *, using: str, value: str) -> WebDriverElementRef:
        elements = self.find_elements(using=using, value=value)
        if not elements:
            raise ElementNotFoundError(using=using, value=value)
        return elements[0]

    def find_child_elements(
        self,
        parent: WebDriverElementRef,
        *,
        using: str,
        value: str,
    ) -> list[WebDriverElementRef]:
        path = f"/element/{parent.element_id}/elements"
        payload = self._session_value("POST", path, json={"using": using, "value": value})
        if not isinstance(payload, list):
            raise self._shape_error(method="POST", path=path, expected="list", value=payload)
        return [WebDriverElementRef(element_id=_extract_element_id(item)) for item in payload]

    def get_element_attribute(self, element: WebDriverElementRef, name: str) -> Optional[str]:
        value = self._session_value("GET", f"/element/{element.element_id}/attribute/{name}")
        if value is None:
            return None
        return str(value)

    def get_element_rect(self, element: WebDriverElementRef) -> dict[str, int]:
        return self._rect("GET", f"/element/{element.element_id}/rect")

    def click(self, element: WebDriverElementRef) -> None:
        self._session_value("POST", f"/element/{element.element_id}/click", json={})

    def tap(self, *, x: int, y: int) -> None:
        # A tap is a zero-length swipe with a short press.
        self.swipe(x1=x, y1=y, x2=x, y2=y, duration_ms=50)

    def swipe(self, *, x1: int, y1: int, x2: int, y2: int, duration_ms: int) -> None:
        if duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        payload = _pointer_swipe_actions(x1=x1, y1=y1, x2=x2, y2=y2, duration_ms=duration_ms)
        self._session_value("POST", "/actions", json=payload)
        self._session_value("DELETE", "/actions")

    def pause(self, duration_ms: float) -> None:
        time.sleep(max(duration_ms, 0) / 1000.0)

    def start_recording_screen(self) -> None:
        self._session_value("POST", "/appium/start_recording_screen", json={"options": {}})

    def stop_recording_screen(self) -> bytes:
        return self._base64_bytes("POST", "/appium/stop_recording_screen", json={"options": {}})

    def _require_session(self) -> None:
        if not self.session_id:
            raise RuntimeError("No active Appium session. Call create_session() first.")
