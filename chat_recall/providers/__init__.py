import httpx

from .base import BaseProvider, ProviderResult
from .hosted import HostedProvider
from .local import LocalProvider
from ..core.config_manager import ConfigManager
from ..core.settings_resolver import EffectiveConfig, ProviderKind


def get_provider_instance(
    effective_config: EffectiveConfig,
    client: httpx.AsyncClient,
    config_manager: ConfigManager,
) -> BaseProvider:
    """Build the provider variant selected by the resolved settings."""
    if effective_config.provider is ProviderKind.LOCAL:
        return LocalProvider(
            url=effective_config.local_url,
            model=effective_config.local_model,
            client=client,
            timeout=config_manager.provider_timeout(ProviderKind.LOCAL.value),
        )
    return HostedProvider(
        api_key=effective_config.hosted_api_key,
        model=effective_config.hosted_model,
        base_url=config_manager.hosted_base_url,
        client=client,
        timeout=config_manager.provider_timeout(ProviderKind.HOSTED.value),
    )


__all__ = [
    "BaseProvider",
    "ProviderResult",
    "HostedProvider",
    "LocalProvider",
    "get_provider_instance",
]
