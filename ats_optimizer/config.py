from __future__ import annotations
import os
from typing import Optional
from pydantic import BaseModel


def _read_secrets() -> dict[str, str]:
    try:
        import streamlit as st  # type: ignore
        if hasattr(st, "secrets"):
            return dict(st.secrets)
    except Exception:
        pass
    return {}


def get_secret(name: str) -> Optional[str]:
    secrets = _read_secrets()
    return secrets.get(name) or os.getenv(name)


# Temperature per stage; scoring and parsing must be as deterministic as the model allows.
STAGE_TEMPERATURES = {
    "parser": 0.0,
    "scorer": 0.0,
    "optimizer": 0.1,
    "formatter": 0.0,
}

STAGES = tuple(STAGE_TEMPERATURES)

DEFAULT_TIMEOUT_SECONDS = 60.0


def llm_timeout() -> float:
    raw = get_secret("LLM_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS


class ScoringPolicy(BaseModel):
    """Clamp bands applied around the generated ATS scores."""

    fallback_initial_score: int = 50
    after_boost: int = 15
    after_floor: int = 85
    fallback_boost: int = 20
    fallback_floor: int = 88
    ceiling: int = 98


_POLICY_ENV = {
    "fallback_initial_score": "ATS_FALLBACK_INITIAL_SCORE",
    "after_boost": "ATS_AFTER_BOOST",
    "after_floor": "ATS_AFTER_FLOOR",
    "fallback_boost": "ATS_FALLBACK_BOOST",
    "fallback_floor": "ATS_FALLBACK_FLOOR",
    "ceiling": "ATS_SCORE_CEILING",
}


def load_policy() -> ScoringPolicy:
    overrides = {}
    for field, env_name in _POLICY_ENV.items():
        value = get_secret(env_name)
        if value:
            overrides[field] = value
    return ScoringPolicy.model_validate(overrides)
