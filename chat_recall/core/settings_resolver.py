"""
Settings Resolver

Turns the loosely structured settings blob sent with each request (plus
environment fallbacks) into a fully defaulted ``EffectiveConfig``.

Saved client settings are never migrated, so several generations of field
names coexist: the nested ``llm.openai.*`` / ``llm.lmstudio.*`` shape
supersedes the flat ``llm.openaiModel``-style fields, which in turn supersede
the oldest ``llm.selectedModel`` field. ``RESOLUTION_ORDER`` lists, per
effective field, the sources in the order they are consulted; the first
non-empty string wins.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

DEFAULT_HOSTED_MODEL = "gpt-3.5-turbo"
DEFAULT_LOCAL_URL = "http://localhost:1234"
LOCAL_MODEL_SENTINEL = "local-model"
DEFAULT_LOCAL_MODEL = LOCAL_MODEL_SENTINEL
DEFAULT_DATABASE_NAME = "chat_logs"
DEFAULT_SYSTEM_INSTRUCTION = "You are a helpful assistant."


class ProviderKind(str, Enum):
    """Which provider variant serves a request. Values match the settings vocabulary."""

    HOSTED = "openai"
    LOCAL = "lmstudio"


@dataclass(frozen=True)
class EnvDefaults:
    """Process environment fallbacks, read fresh for every request."""

    openai_api_key: Optional[str] = None
    mongo_uri: Optional[str] = None
    mongo_db: Optional[str] = None

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvDefaults":
        environ = os.environ if environ is None else environ
        return cls(
            openai_api_key=environ.get("OPENAI_API_KEY") or None,
            mongo_uri=environ.get("MONGO_URI") or None,
            mongo_db=environ.get("MONGO_DB") or None,
        )


@dataclass(frozen=True)
class EffectiveConfig:
    provider: ProviderKind
    hosted_api_key: Optional[str]
    hosted_model: str
    local_url: str
    local_model: str
    system_instruction: str
    database_uri: Optional[str]
    database_name: str

    @property
    def model(self) -> str:
        """Model id for the active provider."""
        return self.hosted_model if self.provider is ProviderKind.HOSTED else self.local_model

    @property
    def persistence_configured(self) -> bool:
        return bool(self.database_uri)


@dataclass(frozen=True)
class SettingSource:
    """
    One place a value can come from.

    Exactly one of ``path`` (keys into the raw settings) or ``env`` (an
    ``EnvDefaults`` attribute) is set. ``unless`` names a value that must be
    skipped even though it is non-empty.
    """

    path: Tuple[str, ...] = ()
    env: Optional[str] = None
    unless: Optional[str] = None

    def lookup(self, raw: Mapping[str, Any], env: EnvDefaults) -> Optional[str]:
        if self.env is not None:
            value = getattr(env, self.env)
        else:
            value = _dig(raw, self.path)
        if not isinstance(value, str) or not value:
            return None
        if self.unless is not None and value == self.unless:
            return None
        return value


def settings(*path: str, unless: Optional[str] = None) -> SettingSource:
    return SettingSource(path=path, unless=unless)


def environment(name: str) -> SettingSource:
    return SettingSource(env=name)


RESOLUTION_ORDER: Dict[str, Tuple[SettingSource, ...]] = {
    "hosted_api_key": (
        settings("llm", "openai", "apiKey"),
        settings("llm", "openaiApiKey"),
        environment("openai_api_key"),
    ),
    "hosted_model": (
        settings("llm", "openai", "model"),
        settings("llm", "openaiModel"),
        settings("llm", "selectedModel", unless=LOCAL_MODEL_SENTINEL),
    ),
    "local_url": (
        settings("llm", "lmstudio", "url"),
        settings("llm", "lmstudioUrl"),
    ),
    "local_model": (
        settings("llm", "lmstudio", "model"),
        settings("llm", "lmstudioModel"),
    ),
    "database_uri": (
        settings("database", "mongoUri"),
        environment("mongo_uri"),
    ),
    "database_name": (
        settings("database", "mongoDb"),
        environment("mongo_db"),
    ),
    "system_instruction": (
        settings("systemInstruction"),
    ),
}

HARDCODED_DEFAULTS: Dict[str, Optional[str]] = {
    "hosted_api_key": None,
    "hosted_model": DEFAULT_HOSTED_MODEL,
    "local_url": DEFAULT_LOCAL_URL,
    "local_model": DEFAULT_LOCAL_MODEL,
    "database_uri": None,
    "database_name": DEFAULT_DATABASE_NAME,
    "system_instruction": DEFAULT_SYSTEM_INSTRUCTION,
}


def _dig(raw: Any, path: Tuple[str, ...]) -> Any:
    node = raw
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


def resolve_field(name: str, raw: Mapping[str, Any], env: EnvDefaults) -> Optional[str]:
    for source in RESOLUTION_ORDER[name]:
        value = source.lookup(raw, env)
        if value is not None:
            return value
    return HARDCODED_DEFAULTS[name]


def resolve_provider(raw: Mapping[str, Any]) -> ProviderKind:
    """
    An explicit ``llm.provider`` always wins. Only when it is absent does the
    legacy ``selectedModel == "local-model"`` sentinel select the local
    provider. Unknown provider names fall back to the hosted provider.
    """
    provider = _dig(raw, ("llm", "provider"))
    if isinstance(provider, str) and provider:
        return ProviderKind.LOCAL if provider == ProviderKind.LOCAL.value else ProviderKind.HOSTED
    if _dig(raw, ("llm", "selectedModel")) == LOCAL_MODEL_SENTINEL:
        return ProviderKind.LOCAL
    return ProviderKind.HOSTED


def resolve(raw: Optional[Mapping[str, Any]], env: Optional[EnvDefaults] = None) -> EffectiveConfig:
    """Resolve raw request settings into an EffectiveConfig. Never raises."""
    if not isinstance(raw, Mapping):
        raw = {}
    if env is None:
        env = EnvDefaults()

    fields = {name: resolve_field(name, raw, env) for name in RESOLUTION_ORDER}
    return EffectiveConfig(provider=resolve_provider(raw), **fields)
