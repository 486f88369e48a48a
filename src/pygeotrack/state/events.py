"""Change events published by the asset store.

The store is the only producer; the notifier and transports treat the
payload as opaque.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pygeotrack.models.asset import Asset

ASSET_TOPIC_PREFIX = "asset:"


class AssetEventKind(StrEnum):
    CREATED = "asset:created"
    UPDATED = "asset:updated"


def asset_topic(asset_id: str) -> str:
    """Per-asset topic name, e.g. ``asset:4f1c...``."""
    return f"{ASSET_TOPIC_PREFIX}{asset_id}"


#: Topics every connected observer receives.
GLOBAL_TOPICS: tuple[str, ...] = (AssetEventKind.CREATED.value, AssetEventKind.UPDATED.value)


class AssetEvent(BaseModel):
    """A committed asset change, as delivered to one topic."""

    model_config = ConfigDict(frozen=True)

    kind: AssetEventKind
    topic: str
    asset: Asset
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_message(self) -> dict[str, Any]:
        """Wire form used by transports."""
        return {
            "kind": self.kind.value,
            "topic": self.topic,
            "asset": self.asset.to_json_dict(),
            "emittedAt": self.emitted_at.isoformat(),
        }
