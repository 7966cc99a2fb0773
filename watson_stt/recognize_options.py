"""
Watson /v1/recognize session parameters.

Turns the free-form option mapping passed to ``RecognizeStream`` into the
three things the service needs: the WebSocket URL (with query parameters),
the opening ``start`` control message and the closing ``stop`` message.

Only keys from ``PARAMS_ALLOWED`` reach the start message; anything else is
silently dropped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from json import dumps
from typing import Any, Dict, Mapping
from urllib.parse import urlencode

from config import WATSON_STT_CONTENT_TYPE, WATSON_STT_MODEL, WATSON_STT_TOKEN, WATSON_STT_URL

# Keys forwarded into the opening message (note the mixed underscores/hyphens, this is what the service expects).
PARAMS_ALLOWED = (
    "continuous",
    "max_alternatives",
    "timestamps",
    "word_confidence",
    "inactivity_timeout",
    "model",
    "content-type",
    "interim_results",
    "keywords",
    "keywords_threshold",
    "word_alternatives_threshold",
)

# Keys forwarded as query parameters of the WebSocket URL.
QUERY_PARAMS_ALLOWED = ("model", "X-Watson-Learning-Opt-Out", "watson-token")

RECOGNIZE_PATH = "/v1/recognize"

CLOSING_MESSAGE: Dict[str, Any] = {"action": "stop"}


def _pick(options: Mapping[str, Any], keys) -> Dict[str, Any]:
    return {k: options[k] for k in keys if k in options}


def _query_value(value: Any) -> str:
    # urlencode would render True as "True"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def build_query_params(options: Mapping[str, Any]) -> Dict[str, str]:
    params: Dict[str, Any] = {"model": WATSON_STT_MODEL}
    params.update(_pick(options, QUERY_PARAMS_ALLOWED))
    return {k: _query_value(v) for k, v in params.items()}


def build_opening_message(options: Mapping[str, Any]) -> Dict[str, Any]:
    message: Dict[str, Any] = {
        "action": "start",
        "model": WATSON_STT_MODEL,
        "content-type": WATSON_STT_CONTENT_TYPE,
        "continuous": True,
        "interim_results": True,
    }
    message.update(_pick(options, PARAMS_ALLOWED))
    return message


def default_options() -> Dict[str, Any]:
    """Options for a session against the service configured in the environment (.env)."""
    options: Dict[str, Any] = {"url": WATSON_STT_URL}
    if WATSON_STT_TOKEN:
        options["watson-token"] = WATSON_STT_TOKEN
    return options


def build_recognize_url(base_url: str, query_params: Mapping[str, str]) -> str:
    """http://host/api -> ws://host/api/v1/recognize?..., https maps to wss."""
    ws_url = re.sub(r"^http", "ws", base_url)
    return f"{ws_url}{RECOGNIZE_PATH}?{urlencode(query_params)}"


@dataclass(frozen=True)
class RecognizeParams:
    """Everything derived from the caller's options, fixed for the session lifetime."""
    url: str
    opening_message: Dict[str, Any]
    closing_message: Dict[str, Any] = field(default_factory=lambda: dict(CLOSING_MESSAGE))
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "RecognizeParams":
        base_url = options.get("url")
        if not base_url:
            raise ValueError("Watson STT url is required")

        return cls(
            url=build_recognize_url(base_url, build_query_params(options)),
            opening_message=build_opening_message(options),
            headers=dict(options.get("headers") or {}),
        )

    def opening_frame(self) -> str:
        return dumps(self.opening_message)

    def closing_frame(self) -> str:
        return dumps(self.closing_message)
