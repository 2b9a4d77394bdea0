from __future__ import annotations
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_groq import ChatGroq
from langchain_mistralai import ChatMistralAI
from .config import STAGE_TEMPERATURES, get_secret, llm_timeout
from .errors import GenerationTransportError


PROVIDERS = {"auto", "groq", "gemini", "mistral"}

Prompt = Union[str, Sequence[BaseMessage]]


def normalize_provider(p: str | None) -> str:
    if not p:
        return "auto"
    p = p.strip().lower()
    if p in PROVIDERS:
        return p
    return "auto"


def build_groq(temperature: float = 0.0) -> ChatGroq:
    key = get_secret("GROQ_API_KEY")
    if not key:
        raise RuntimeError("GROQ_API_KEY is missing. Set it in .env or Streamlit secrets.")
    model = get_secret("GROQ_MODEL") or "llama-3.1-8b-instant"
    os.environ["GROQ_API_KEY"] = key
    return ChatGroq(model=model, temperature=temperature, timeout=llm_timeout())


def build_gemini(temperature: float = 0.0) -> ChatGoogleGenerativeAI:
    # Prefer GEMINI_API_KEY, fallback to GOOGLE_API_KEY
    key = get_secret("GEMINI_API_KEY") or get_secret("GOOGLE_API_KEY")
    if not key:
        raise RuntimeError("GEMINI_API_KEY (or GOOGLE_API_KEY) is missing. Set it in .env or Streamlit secrets.")
    model = get_secret("GEMINI_MODEL") or "gemini-2.0-flash"
    os.environ["GEMINI_API_KEY"] = key
    os.environ["GOOGLE_API_KEY"] = key
    return ChatGoogleGenerativeAI(model=model, temperature=temperature, timeout=llm_timeout())


def build_mistral(temperature: float = 0.0) -> ChatMistralAI:
    key = get_secret("MISTRAL_API_KEY")
    if not key:
        raise RuntimeError("MISTRAL_API_KEY is missing. Set it in .env or Streamlit secrets.")
    model = get_secret("MISTRAL_MODEL") or "mistral-large-latest"
    os.environ["MISTRAL_API_KEY"] = key
    return ChatMistralAI(model=model, temperature=temperature, timeout=llm_timeout())


_BUILDERS: Dict[str, Callable[[float], Any]] = {
    "groq": build_groq,
    "gemini": build_gemini,
    "mistral": build_mistral,
}


class MultiProviderLLM:
    """Try multiple provider builders in order. Build lazily and failover on errors."""

    def __init__(self, builders: List[Callable[[], Any]]):
        self.builders = builders
        self._instances: List[Any | None] = [None] * len(builders)

    def invoke(self, messages: Any) -> Any:
        errors: List[str] = []
        last_exc: Optional[Exception] = None
        for i, b in enumerate(self.builders):
            # Build if needed
            if self._instances[i] is None:
                try:
                    self._instances[i] = b()
                except Exception as e:
                    errors.append(f"build[{i}]: {e}")
                    last_exc = e
                    continue
            model = self._instances[i]
            try:
                return model.invoke(messages)
            except Exception as e:
                errors.append(f"invoke[{i}]: {e}")
                last_exc = e
                continue
        raise GenerationTransportError("All providers failed: " + "; ".join(errors)) from last_exc


def get_llm(provider: str = "auto", temperature: float = 0.0) -> Any:
    p = normalize_provider(provider)
    if p in _BUILDERS:
        return _BUILDERS[p](temperature)
    # auto
    return MultiProviderLLM([
        lambda: build_groq(temperature),
        lambda: build_gemini(temperature),
        lambda: build_mistral(temperature),
    ])


def stage_llms(provider: str = "auto") -> Dict[str, Any]:
    """One chat model per pipeline stage, sharing instances between equal temperatures."""
    by_temperature: Dict[float, Any] = {}
    llms: Dict[str, Any] = {}
    for stage, temperature in STAGE_TEMPERATURES.items():
        if temperature not in by_temperature:
            by_temperature[temperature] = get_llm(provider, temperature)
        llms[stage] = by_temperature[temperature]
    return llms


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    # Some providers return a list of content parts
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


def generate(llm: Any, prompt: Prompt) -> str:
    """Run one model call and return its raw text.

    The text is not guaranteed to be well-formed; callers normalize it. Any
    failure of the call itself is raised as GenerationTransportError.
    """
    messages = [HumanMessage(content=prompt)] if isinstance(prompt, str) else list(prompt)
    try:
        resp = llm.invoke(messages)
    except GenerationTransportError:
        raise
    except Exception as e:
        raise GenerationTransportError(f"{type(e).__name__}: {e}") from e
    return _content_text(getattr(resp, "content", resp)).strip()
