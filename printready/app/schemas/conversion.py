"""
Conversion request schemas.

Defines the per-conversion option surface, the static table of bundled
output-intent presets, and the resolved output-intent metadata used to
build the PDF/X-3 definition document.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from printready.app.loaders.base import AssetLoader


class OutputProfile(str, Enum):
    """
    Output-intent selection.

    Three bundled presets plus a caller-supplied ICC profile.
    """

    GRACOL = "gracol"
    FOGRA39 = "fogra39"
    SRGB = "srgb"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProfilePreset:
    file: str
    identifier: str
    info: str


PROFILE_PRESETS: dict[OutputProfile, ProfilePreset] = {
    OutputProfile.GRACOL: ProfilePreset(
        file="GRACoL2013_CRPC6.icc",
        identifier="CGATS 21.2",
        info="GRACoL 2013 CRPC6",
    ),
    OutputProfile.FOGRA39: ProfilePreset(
        file="ISOcoated_v2_eci.icc",
        identifier="FOGRA39",
        info="ISO Coated v2 (ECI)",
    ),
    OutputProfile.SRGB: ProfilePreset(
        file="sRGB_IEC61966-2-1.icc",
        identifier="sRGB IEC61966-2.1",
        info="sRGB IEC61966-2.1",
    ),
}

CUSTOM_IDENTIFIER_DEFAULT = "Custom Profile"
CUSTOM_CONDITION_DEFAULT = "Custom ICC Profile"
DEFAULT_TITLE = "Untitled"


class ConversionOptions(BaseModel):
    """
    Immutable options for one conversion (or one batch).

    ``asset_loader`` wins over ``asset_path`` when both are given. When
    neither is given the asset loader is selected from the runtime.
    """

    output_profile: OutputProfile = Field(
        ...,
        description="Bundled preset identifier or 'custom'",
    )

    custom_profile: Optional[bytes] = Field(
        None,
        description="Raw ICC profile bytes, required iff output_profile is 'custom'",
    )

    title: Optional[str] = Field(
        None,
        description="Document title written to the Info dictionary",
    )

    output_condition_identifier: Optional[str] = Field(
        None,
        description="Overrides the preset's OutputConditionIdentifier",
    )

    output_condition: Optional[str] = Field(
        None,
        description="Overrides the preset's human-readable OutputCondition",
    )

    flatten_transparency: bool = Field(
        True,
        description=(
            "Rasterize transparent content for PDF/X-3 consumers that "
            "cannot render live transparency"
        ),
    )

    asset_loader: Optional[AssetLoader] = Field(
        None,
        description="Explicit asset loader collaborator",
    )

    asset_path: Optional[str] = Field(
        None,
        description="Shorthand for a network asset loader rooted at this URL",
    )

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
    )

    @model_validator(mode="after")
    def custom_profile_required_for_custom(self) -> "ConversionOptions":
        if self.output_profile is OutputProfile.CUSTOM and not self.custom_profile:
            raise ValueError(
                "custom_profile is required when output_profile is 'custom'"
            )
        return self

    @property
    def preset(self) -> ProfilePreset | None:
        return PROFILE_PRESETS.get(self.output_profile)


@dataclass(frozen=True)
class OutputIntent:
    """Resolved OutputIntent metadata for one conversion."""

    identifier: str
    condition: str
    title: str


def resolve_output_intent(options: ConversionOptions) -> OutputIntent:
    """
    Resolve OutputIntent strings for the selected profile.

    Caller overrides take precedence over preset defaults. A custom
    profile uses the caller's values, falling back to generic
    placeholders for whichever is omitted.
    """
    preset = options.preset

    if preset is None:
        identifier = options.output_condition_identifier or CUSTOM_IDENTIFIER_DEFAULT
        condition = options.output_condition or CUSTOM_CONDITION_DEFAULT
    else:
        identifier = options.output_condition_identifier or preset.identifier
        condition = options.output_condition or preset.info

    return OutputIntent(
        identifier=identifier,
        condition=condition,
        title=options.title or DEFAULT_TITLE,
    )
