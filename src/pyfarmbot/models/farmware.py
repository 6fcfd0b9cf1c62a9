"""Farmware manifest models.

FarmBot OS publishes installed Farmware under ``process_info.farmwares``.
Two manifest shapes exist: the legacy shape used by FarmBot OS < 8 and the
current shape, which always carries ``farmware_manifest_version``. The shape
is chosen once, at validation time, by that discriminant.
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar

from pydantic import ConfigDict, Discriminator, Field, Tag

from pyfarmbot._constants import FARMWARE_MANIFEST_VERSION_KEY
from pyfarmbot.models._base import FarmbotRecord


class FarmwareConfig(FarmbotRecord):
    """An input requested by a Farmware (used by form builders)."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    label: str = ""
    value: str = ""


class LegacyFarmwareManifestMeta(FarmbotRecord):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    min_os_version_major: str = ""
    description: str = ""
    language: str = ""
    version: str = ""
    author: str = ""
    zip: str = ""


class LegacyFarmwareManifest(FarmbotRecord):
    """Farmware manifest as published by FarmBot OS < v8."""

    is_legacy: ClassVar[bool] = True

    farmware_tools_version: str | None = None
    executable: str
    uuid: str
    args: list[str] = Field(default_factory=list)
    name: str
    url: str = ""
    path: str = ""
    meta: LegacyFarmwareManifestMeta = Field(default_factory=LegacyFarmwareManifestMeta)
    config: list[FarmwareConfig] = Field(default_factory=list)

    @property
    def farmware_name(self) -> str:
        return self.name

    @property
    def farmware_version(self) -> str:
        return self.meta.version


class FarmwareManifest(FarmbotRecord):
    """Farmware manifest as published by FarmBot OS >= v8."""

    is_legacy: ClassVar[bool] = False

    farmware_manifest_version: str
    package: str
    package_version: str = ""
    description: str = ""
    author: str = ""
    language: str = ""
    executable: str
    args: str = ""
    config: dict[str, FarmwareConfig] = Field(default_factory=dict)
    farmbot_os_version_requirement: str = ""
    farmware_tools_version_requirement: str = ""
    url: str = ""
    zip: str = ""

    @property
    def farmware_name(self) -> str:
        return self.package

    @property
    def farmware_version(self) -> str:
        return self.package_version


def _manifest_tag(value: Any) -> str:
    if isinstance(value, dict):
        return "current" if FARMWARE_MANIFEST_VERSION_KEY in value else "legacy"
    return "legacy" if getattr(value, "is_legacy", False) else "current"


AnyFarmwareManifest = Annotated[
    Annotated[FarmwareManifest, Tag("current")] | Annotated[LegacyFarmwareManifest, Tag("legacy")],
    Discriminator(_manifest_tag),
]
"""Either manifest shape, selected by presence of ``farmware_manifest_version``."""
