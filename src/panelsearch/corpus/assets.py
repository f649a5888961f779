"""Display-asset resolution: map a document id to the URL of its image."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from .dates import year_of


@runtime_checkable
class AssetResolver(Protocol):
    def resolve_display_asset(self, document_id: str) -> str:
        """Return the display-asset URL for ``document_id``."""
        ...


class TemplateAssetResolver:
    """Resolve asset URLs from a format template.

    The template may reference ``{id}`` and ``{year}``. Explicit entries in
    ``overrides`` win over the template. Lookups are pure.
    """

    def __init__(self, url_template: str, overrides: Mapping[str, str] | None = None):
        self.url_template = url_template
        self._overrides = dict(overrides or {})

    def resolve_display_asset(self, document_id: str) -> str:
        override = self._overrides.get(document_id)
        if override:
            return override
        return self.url_template.format(id=document_id, year=year_of(document_id))
