#!/usr/bin/env python3
"""
worklog.py

評価・監査スクリプトの実行履歴を JSONL で `output/private/summary/work_history.jsonl` に追記する。

目的:
  - どの引数で Airy 関数を評価し、どの監査出力を生成したかを機械可読で残す。
  - 複数スクリプトの同時実行でも行が混ざらないよう、ロックファイルで追記を直列化する。

環境変数 `AIRY_WORKLOG_PATH` が設定されていれば既定の出力先より優先する。
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

ENV_WORKLOG_PATH = "AIRY_WORKLOG_PATH"

# Fields whose values may hold filesystem paths; stored relative to the repo root.
_PATH_FIELDS = ("output", "outputs", "input", "inputs", "log")


# 関数: `_repo_root` の入出力契約と処理意図を定義する。
def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


# 関数: `default_jsonl_path` の入出力契約と処理意図を定義する。

def default_jsonl_path() -> Path:
    env = os.environ.get(ENV_WORKLOG_PATH, "").strip()
    # 条件分岐: `env` を満たす経路を評価する。
    if env:
        return Path(env)

    return _repo_root() / "output" / "private" / "summary" / "work_history.jsonl"


# 関数: `_lock_path_for` の入出力契約と処理意図を定義する。

def _lock_path_for(jsonl_path: Path) -> Path:
    return jsonl_path.with_suffix(jsonl_path.suffix + ".lock")


# 関数: `_ensure_lock_file` の入出力契約と処理意図を定義する。

def _ensure_lock_file(lock_path: Path) -> None:
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    # 条件分岐: `lock_path.exists() and lock_path.stat().st_size >= 1` を満たす経路を評価する。
    if lock_path.exists() and lock_path.stat().st_size >= 1:
        return

    # Region locking on Windows needs at least one byte.

    with open(lock_path, "ab") as f:
        # 条件分岐: `f.tell() == 0` を満たす経路を評価する。
        if f.tell() == 0:
            f.write(b"0")
            f.flush()


# 関数: `_lock_file` の入出力契約と処理意図を定義する。

def _lock_file(f, *, unlock: bool = False) -> None:  # type: ignore[no-untyped-def]
    # 条件分岐: `os.name == "nt"` を満たす経路を評価する。
    if os.name == "nt":
        import msvcrt

        f.seek(0)
        msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK if unlock else msvcrt.LK_LOCK, 1)
        return

    import fcntl

    fcntl.flock(f.fileno(), fcntl.LOCK_UN if unlock else fcntl.LOCK_EX)


# 関数: `_normalize` の入出力契約と処理意図を定義する。

def _normalize(root: Path, v: Any) -> Any:
    # 条件分岐: `isinstance(v, Path)` を満たす経路を評価する。
    if isinstance(v, Path):
        try:
            return str(v.resolve().relative_to(root)).replace("\\", "/")
        except ValueError:
            return str(v).replace("\\", "/")

    # 条件分岐: `isinstance(v, dict)` を満たす経路を評価する。

    if isinstance(v, dict):
        return {kk: _normalize(root, vv) for kk, vv in v.items()}

    # 条件分岐: `isinstance(v, (list, tuple))` を満たす経路を評価する。

    if isinstance(v, (list, tuple)):
        return [_normalize(root, vv) for vv in v]

    return v


# 関数: `append_event` の入出力契約と処理意図を定義する。

def append_event(event: Dict[str, Any], *, jsonl_path: Optional[Path] = None) -> Path:
    """
    Append one event to the JSONL history and return the path written.
    Keep events small: event_type, params, a few key metrics, output paths.
    """
    root = _repo_root()
    path = jsonl_path or default_jsonl_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    ev: Dict[str, Any] = dict(event)
    ev.setdefault("generated_utc", datetime.now(timezone.utc).isoformat())
    for k in _PATH_FIELDS:
        # 条件分岐: `k in ev` を満たす経路を評価する。
        if k in ev:
            ev[k] = _normalize(root, ev[k])

    line = json.dumps(ev, ensure_ascii=False)
    lock_path = _lock_path_for(path)
    _ensure_lock_file(lock_path)
    with open(lock_path, "r+b") as lf:
        _lock_file(lf)
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        finally:
            _lock_file(lf, unlock=True)

    return path


# 関数: `iter_events` の入出力契約と処理意図を定義する。

def iter_events(jsonl_path: Optional[Path] = None, *, event_type: Optional[str] = None) -> Iterator[Dict[str, Any]]:
    """Yield recorded events in file order, optionally filtered by event_type."""
    path = jsonl_path or default_jsonl_path()
    # 条件分岐: `not path.exists()` を満たす経路を評価する。
    if not path.exists():
        return

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            # 条件分岐: `not line` を満たす経路を評価する。
            if not line:
                continue

            ev = json.loads(line)
            # 条件分岐: `event_type is None or ev.get("event_type") == event_type` を満たす経路を評価する。
            if event_type is None or ev.get("event_type") == event_type:
                yield ev
