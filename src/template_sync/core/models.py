"""Canonical remote content type.

``TemplateBundle`` is the single shape the reconciliation engine sees for
a remote template, whatever envelope the API wrapped it in.  It knows how
to lay itself out as the three tracked files of an artifact directory.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TemplateBundle(BaseModel):
    """One remote template: markup, style and metadata.

    Field aliases follow the API's camelCase names; both spellings are
    accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    html: str
    css: str | None = None
    network_id: str | None = Field(default=None, alias="networkId")
    publisher_id: str | None = Field(default=None, alias="publisherId")
    creative_asset_group_id: str | None = Field(
        default=None, alias="creativeAssetGroupId"
    )
    notes: dict[str, Any] = Field(default_factory=dict)
    version: int | None = None
    date_updated: str | None = Field(default=None, alias="dateUpdated")

    def metadata(self) -> dict[str, Any]:
        """Return the local metadata document written beside the markup."""
        return {
            "templateId": self.id,
            "networkId": self.network_id,
            "publisherId": self.publisher_id,
            "creativeAssetGroupId": self.creative_asset_group_id,
            "name": self.name,
            "notes": self.notes,
        }

    def to_files(self, names: Sequence[str]) -> dict[str, str]:
        """Render the bundle as ``{relative_name: text}``.

        Args:
            names: The markup, style and metadata file names, in that order.
        """
        markup, style, meta = names
        return {
            markup: self.html,
            style: self.css or "",
            meta: json.dumps(self.metadata(), indent=2),
        }

    def with_local_content(self, html: str, css: str) -> TemplateBundle:
        """Return a copy carrying locally edited markup and style."""
        return self.model_copy(update={"html": html, "css": css})

    def to_payload(self) -> dict[str, Any]:
        """Serialise for the API (camelCase, ``None`` fields dropped)."""
        return self.model_dump(by_alias=True, exclude_none=True)
