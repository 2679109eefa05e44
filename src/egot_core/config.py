"""Runtime configuration, overridable from ``EGOT_*`` environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ValueError(msg) from None


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        msg = f"{name} must be a number, got {raw!r}"
        raise ValueError(msg) from None


@dataclass
class EgotConfig:
    """Tunables for context compaction, turn budgets and labels.

    Environment variables:
        - ``EGOT_RAW_CONTEXT_MAX_TOKENS``: raw artifact content is sent while its
          estimated size stays at or below this (default 2000)
        - ``EGOT_SUMMARY_MAX_AGE_TURNS``: turns before a summary is recomputed
          even if the artifact is unchanged (default 5)
        - ``EGOT_TURN_TIMEOUT_SEC``: wall-clock budget per turn (default 120)
        - ``EGOT_LABEL_MAX_CHARS``: checkpoint label length (default 40)
        - ``EGOT_MODEL``: model id sent with every request
        - ``EGOT_DB_PATH``: SQLite file; empty means in-memory storage
    """

    raw_context_max_tokens: int = 2000
    summary_max_age_turns: int = 5
    turn_timeout_sec: float = 120.0
    label_max_chars: int = 40
    model: str = "egot-default"
    db_path: str = ""

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> EgotConfig:
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            raw_context_max_tokens=_int(
                env, "EGOT_RAW_CONTEXT_MAX_TOKENS", defaults.raw_context_max_tokens
            ),
            summary_max_age_turns=_int(
                env, "EGOT_SUMMARY_MAX_AGE_TURNS", defaults.summary_max_age_turns
            ),
            turn_timeout_sec=_float(env, "EGOT_TURN_TIMEOUT_SEC", defaults.turn_timeout_sec),
            label_max_chars=_int(env, "EGOT_LABEL_MAX_CHARS", defaults.label_max_chars),
            model=env.get("EGOT_MODEL", "").strip() or defaults.model,
            db_path=env.get("EGOT_DB_PATH", "").strip(),
        )
