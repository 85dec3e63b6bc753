"""Canonical provider profiles.

Each OAuth source delivers its profile in its own shape. The adapters in
this module normalize those payloads into one ``ProviderProfile`` before the
reconciliation engine ever sees them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from iam.domain.value_objects import Provider


@dataclass(frozen=True)
class ProviderProfile:
    """Provider-independent view of a third-party authentication profile."""

    provider: Provider
    provider_id: str
    name: str | None = None
    photo: str | None = None
    email: str | None = None


def provider_from_strategy(strategy: str) -> Provider:
    """Resolve the stored provider from an authentication strategy name.

    Strategy names may carry a suffix (``facebook-token``); only the part
    before the first ``-`` identifies the provider.

    Raises:
        ValueError: If the strategy names no known provider
    """
    prefix = strategy.split("-", 1)[0].strip().lower()
    try:
        return Provider(prefix)
    except ValueError as e:
        raise ValueError(f"Unsupported provider: {strategy}") from e


def _first_value(items: Any) -> str | None:
    if isinstance(items, (list, tuple)) and items:
        first = items[0]
        if isinstance(first, Mapping):
            value = first.get("value")
            return str(value) if value else None
        if isinstance(first, str) and first:
            return first
    return None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _from_passport_profile(
    provider: Provider, payload: Mapping[str, Any]
) -> ProviderProfile:
    """Google, Facebook and Twitter deliver passport-style profiles."""
    return ProviderProfile(
        provider=provider,
        provider_id=str(payload.get("id") or ""),
        name=_text(payload.get("displayName")),
        photo=_first_value(payload.get("photos")) or _text(payload.get("photo")),
        email=_first_value(payload.get("emails")) or _text(payload.get("email")),
    )


def _from_apple_claims(
    provider: Provider, payload: Mapping[str, Any]
) -> ProviderProfile:
    """Apple sends identity-token claims: ``sub`` is the subject id."""
    return ProviderProfile(
        provider=provider,
        provider_id=str(payload.get("sub") or payload.get("id") or ""),
        name=_text(payload.get("name")),
        photo=None,
        email=_text(payload.get("email")),
    )


_ADAPTERS: dict[Provider, Callable[[Provider, Mapping[str, Any]], ProviderProfile]] = {
    Provider.GOOGLE: _from_passport_profile,
    Provider.FACEBOOK: _from_passport_profile,
    Provider.TWITTER: _from_passport_profile,
    Provider.APPLE: _from_apple_claims,
}


def normalize_profile(strategy: str, payload: Mapping[str, Any]) -> ProviderProfile:
    """Normalize a raw OAuth payload into a ``ProviderProfile``.

    Args:
        strategy: Authentication strategy name (e.g. ``google``, ``facebook-token``)
        payload: Profile or identity-token claims as delivered by the provider

    Returns:
        Canonical profile

    Raises:
        ValueError: For unknown strategies and for ``local``
    """
    provider = provider_from_strategy(strategy)
    adapter = _ADAPTERS.get(provider)
    if adapter is None:
        raise ValueError(f"{provider} has no OAuth profile adapter")
    return adapter(provider, payload)
