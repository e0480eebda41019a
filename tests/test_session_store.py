from __future__ import annotations

import json
from pathlib import Path

import pytest

from session_store import CHAT_HISTORY_KEY, SLIDE_DATA_KEY, USER_NAME_KEY, SessionStore


def test_missing_file_starts_empty(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "session.json")
    assert store.get(USER_NAME_KEY) is None
    assert store.get(CHAT_HISTORY_KEY, []) == []


def test_every_mutation_is_written(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "session.json"
    store = SessionStore(path)

    store.set(USER_NAME_KEY, "Ada")
    assert json.loads(path.read_text(encoding="utf-8")) == {USER_NAME_KEY: "Ada"}

    store.set(CHAT_HISTORY_KEY, [{"role": "user", "content": "hi"}])
    store.delete(USER_NAME_KEY)
    assert json.loads(path.read_text(encoding="utf-8")) == {CHAT_HISTORY_KEY: [{"role": "user", "content": "hi"}]}

    reloaded = SessionStore(path)
    assert reloaded.get(CHAT_HISTORY_KEY) == [{"role": "user", "content": "hi"}]


def test_file_is_read_only_once(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    path.write_text(json.dumps({USER_NAME_KEY: "Grace"}), encoding="utf-8")
    store = SessionStore(path)

    path.write_text(json.dumps({USER_NAME_KEY: "Changed behind our back"}), encoding="utf-8")
    assert store.get(USER_NAME_KEY) == "Grace"


def test_corrupt_or_foreign_content_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{broken", encoding="utf-8")
    assert SessionStore(path).get(USER_NAME_KEY) is None

    path.write_text(json.dumps({"other": 1, SLIDE_DATA_KEY: {"slides": []}}), encoding="utf-8")
    store = SessionStore(path)
    assert store.get("other") is None
    assert store.get(SLIDE_DATA_KEY) == {"slides": []}


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    store = SessionStore(tmp_path / "session.json")
    with pytest.raises(KeyError):
        store.set("password", "hunter2")


def test_clear_removes_everything(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    store = SessionStore(path)
    store.set(USER_NAME_KEY, "Ada")
    store.clear()
    assert json.loads(path.read_text(encoding="utf-8")) == {}
