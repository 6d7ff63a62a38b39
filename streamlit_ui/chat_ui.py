import sys
from pathlib import Path
from typing import Any, Dict, List

import requests
import streamlit as st
from requests.exceptions import RequestException

try:
    from core.settings import SETTINGS
except ModuleNotFoundError:
    ROOT = Path(__file__).resolve().parents[1]
    if str(ROOT) not in sys.path:
        sys.path.insert(0, str(ROOT))
    from core.settings import SETTINGS


st.set_page_config(page_title="Medical Assistant", layout="centered")
st.title("Medical Assistant")
st.caption("Ask about symptoms, get doctor suggestions & health precautions")

API_BASE_URL = SETTINGS.UI.API_BASE_URL
ENDPOINT_CHAT_MESSAGE = SETTINGS.UI.ENDPOINT_CHAT_MESSAGE
ENDPOINT_CHAT_HISTORY = SETTINGS.UI.ENDPOINT_CHAT_HISTORY
LANGUAGES = SETTINGS.CHAT.CHAT_SUPPORTED_LANGUAGES
DEFAULT_LANGUAGE_INDEX = (
    LANGUAGES.index(SETTINGS.CHAT.CHAT_DEFAULT_LANGUAGE)
    if SETTINGS.CHAT.CHAT_DEFAULT_LANGUAGE in LANGUAGES
    else 0
)

if "user_id" not in st.session_state:
    st.session_state.user_id = SETTINGS.UI.UI_USER_ID


def _headers() -> Dict[str, str]:
    return {"X-User-Id": st.session_state.user_id}


def _error_message(resp: requests.Response) -> str:
    """Pull the user-facing message out of an API error body."""
    try:
        detail = resp.json().get("detail")
    except ValueError:
        return resp.text
    if isinstance(detail, dict):
        return detail.get("message") or str(detail)
    return str(detail)


def fetch_history() -> List[Dict[str, Any]]:
    """Retrieve the caller's stored messages."""
    url = f"{API_BASE_URL}{ENDPOINT_CHAT_HISTORY}"
    try:
        resp = requests.get(url, headers=_headers(), timeout=60)
        resp.raise_for_status()
    except RequestException as e:
        st.error(f"Failed to load chat history: {e}")
        return []
    data = resp.json() or {}
    return (data.get("data") or {}).get("messages", [])


def clear_history() -> bool:
    url = f"{API_BASE_URL}{ENDPOINT_CHAT_HISTORY}"
    try:
        resp = requests.delete(url, headers=_headers(), timeout=60)
        resp.raise_for_status()
    except RequestException as e:
        st.error(f"Failed to clear chat history: {e}")
        return False
    return True


def ask_backend(message: str, language: str) -> str:
    """Send a message and return the assistant reply or raise with the API's message."""
    url = f"{API_BASE_URL}{ENDPOINT_CHAT_MESSAGE}"
    payload = {"message": message, "language": language}
    try:
        resp = requests.post(url, json=payload, headers=_headers(), timeout=120)
    except RequestException as e:
        raise RuntimeError(f"Failed to reach API at {url}: {e}")

    if resp.status_code != 200:
        raise RuntimeError(_error_message(resp))

    data = resp.json() or {}
    if "data" not in data:
        raise RuntimeError("Malformed API response: missing 'data'")
    return data["data"]["response"]


if "messages" not in st.session_state:
    st.session_state.messages = [
        {"role": m.get("role", "assistant"), "content": m.get("content", "")}
        for m in fetch_history()
    ]

with st.sidebar:
    st.subheader("Settings")
    language = st.selectbox("Response language", LANGUAGES, index=DEFAULT_LANGUAGE_INDEX)
    st.text_input("User id", key="user_id")
    if st.button("Clear chat"):
        if clear_history():
            st.session_state.messages = []
    st.caption(f"API_BASE_URL = {API_BASE_URL}")

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])

if prompt := st.chat_input("Describe your symptoms..."):
    st.session_state.messages.append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    with st.chat_message("assistant"):
        with st.spinner("Thinking..."):
            try:
                answer = ask_backend(prompt, language)
            except RuntimeError as e:
                # Shown in the transcript only; the failed turn is not stored server-side
                answer = str(e)
        st.markdown(answer)
    st.session_state.messages.append({"role": "assistant", "content": answer})
