from __future__ import annotations

from visionrelay.core.config.schema import ProviderEntry, ProvidersConfig
from visionrelay.core.providers.adapters import build_adapter
from visionrelay.core.providers.base import AuthType, ProviderConfig
from visionrelay.core.providers.credentials import CredentialLookup
from visionrelay.core.telemetry.logging import get_logger

logger = get_logger(__name__)


def _to_config(
    entry: ProviderEntry,
    *,
    requires_auth: bool = False,
    auth_type: AuthType = AuthType.NONE,
    credential_id: str | None = None,
) -> ProviderConfig:
    return ProviderConfig(
        name=entry.name,
        endpoint=entry.endpoint,
        adapter=build_adapter(entry.wire_format, model=entry.model, max_tokens=entry.max_tokens, mime_type=entry.mime_type),
        max_retries=entry.max_retries,
        timeout_ms=entry.timeout_ms,
        requires_auth=requires_auth,
        auth_type=auth_type,
        model=entry.model,
        credential_id=credential_id,
    )


class ProviderRegistry:
    """Builds the priority-ordered provider list for a session.

    Base providers come first in declared order. Each credential family whose
    key is available is then appended in declared order, keeping its own
    declared sub-order. The result depends only on the catalog and the
    credential answers.
    """

    def __init__(self, catalog: ProvidersConfig | None = None) -> None:
        self.catalog = catalog or ProvidersConfig()

    def build(self, credentials: CredentialLookup) -> list[ProviderConfig]:
        providers = [_to_config(entry) for entry in self.catalog.base]

        for family in self.catalog.families:
            if not credentials.has_key(family.id):
                continue
            auth_type = AuthType(family.auth_type)
            providers.extend(
                _to_config(entry, requires_auth=True, auth_type=auth_type, credential_id=family.id)
                for entry in family.providers
            )
            logger.info("credential_family_enabled", family=family.id, providers=len(family.providers))

        logger.info("provider_registry_built", providers=[p.name for p in providers])
        return providers
