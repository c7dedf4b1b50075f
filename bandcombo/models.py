from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .bands import BandInfo
from .decoder import DecodedCombo, DescriptorGroup, DecodeResult
from .validation import DeviceProfile, ValidationIssue

StrategyName = Literal["preserve", "auto", "fixed"]
DescriptorType = Literal[137, 201, 333]
Severity = Literal["error", "warning"]


class BandModel(BaseModel):
    band: int
    duplexMode: str
    dlLowMhz: float
    dlHighMhz: float
    ulLowMhz: float | None = None
    ulHighMhz: float | None = None
    name: str
    hasUplink: bool

    @classmethod
    def from_info(cls, info: BandInfo) -> BandModel:
        return cls(
            band=info.band,
            duplexMode=info.duplex_mode.value,
            dlLowMhz=info.dl_low_mhz,
            dlHighMhz=info.dl_high_mhz,
            ulLowMhz=info.ul_low_mhz,
            ulHighMhz=info.ul_high_mhz,
            name=info.name,
            hasUplink=info.has_uplink,
        )


class ProfileModel(BaseModel):
    id: str
    name: str
    maxDlCc: int
    maxUlScell: int
    maxTotalUl: int
    supportedBands: list[int] = Field(default_factory=list)
    bandMimo: dict[str, list[int]] = Field(default_factory=dict)

    @classmethod
    def from_profile(cls, key: str, profile: DeviceProfile) -> ProfileModel:
        return cls(id=key, **profile.to_dict())


class DecodedComboModel(BaseModel):
    text: str
    streams: int
    hasULCA: bool
    descType: int
    groupIdx: int
    dlKey: str

    @classmethod
    def from_decoded(cls, combo: DecodedCombo) -> DecodedComboModel:
        return cls(**combo.to_dict())


class DescriptorGroupModel(BaseModel):
    """One DL header from a decode, as sent back for preserve-mode encoding."""

    descType: DescriptorType
    band: list[int] = Field(..., min_length=1, max_length=6)
    bclass: list[int] = Field(..., min_length=1, max_length=6)
    ant: list[int] = Field(..., min_length=1, max_length=6)
    combos: list[int] = Field(default_factory=list)

    @classmethod
    def from_group(cls, group: DescriptorGroup) -> DescriptorGroupModel:
        return cls(**group.to_dict())

    def to_group(self) -> DescriptorGroup:
        return DescriptorGroup.from_dict(self.model_dump())


class DecodeResponse(BaseModel):
    fileSize: int
    originalSize: int
    wasCompressed: bool
    compressionRatio: float | None = None
    formatVersion: int
    numDescriptors: int
    numCombos: int
    maxStreams: int
    descriptorStats: dict[str, int]
    errors: list[str]
    warnings: list[str] = []
    combos: list[DecodedComboModel]
    groups: list[DescriptorGroupModel]

    @classmethod
    def from_result(cls, result: DecodeResult) -> DecodeResponse:
        data = result.to_dict()
        data["combos"] = [DecodedComboModel.from_decoded(c) for c in result.combos]
        data["groups"] = [DescriptorGroupModel.from_group(g) for g in result.groups]
        return cls(**data)


class EncodeComboModel(BaseModel):
    text: str = Field(..., min_length=1, max_length=200)
    # Group index from a previous decode; used by the preserve strategy
    groupIdx: int | None = Field(None, ge=0)


class EncodeRequest(BaseModel):
    combos: list[EncodeComboModel | str] = Field(..., max_length=20_000)
    strategy: StrategyName | None = None
    descriptorType: DescriptorType | None = None
    optimizeGrouping: bool | None = None
    compress: bool | None = None
    formatVersion: int | None = Field(None, ge=0, le=0xFFFF)
    maxUlPerCombo: int | None = Field(None, ge=0, le=2)
    originalGroups: list[DescriptorGroupModel] | None = None
    model_config = ConfigDict(populate_by_name=True)

    def combo_items(self) -> list[EncodeComboModel]:
        return [EncodeComboModel(text=c) if isinstance(c, str) else c for c in self.combos]


class LimitsModel(BaseModel):
    maxCc: int | None = Field(None, ge=1, le=32)
    maxDlCc: int | None = Field(None, ge=1, le=32)
    maxUlScell: int | None = Field(None, ge=0, le=32)
    maxTotalUl: int | None = Field(None, ge=0, le=32)
    allowFddTddMix: bool | None = None


class ValidateRequest(BaseModel):
    combo: str = Field(..., min_length=1, max_length=200)
    profile: str | None = Field(None, max_length=100)
    pcellIndex: int | None = Field(None, ge=0)
    limits: LimitsModel | None = None


class IssueModel(BaseModel):
    code: str
    message: str
    severity: Severity
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> IssueModel:
        return cls(**issue.to_dict())


class ValidateResponse(BaseModel):
    combo: str
    streams: int
    hasULCA: bool
    valid: bool
    errors: list[IssueModel]
    warnings: list[IssueModel]


class ParseRequest(BaseModel):
    text: str = Field(..., max_length=2_000_000)
    recalculate: bool = False


class ComboEntryModel(BaseModel):
    text: str
    streams: int
    hasULCA: bool
    pcellIndex: int | None = None


class SkippedLineModel(BaseModel):
    lineNumber: int
    line: str
    reason: str


class ParseResponse(BaseModel):
    entries: list[ComboEntryModel]
    skipped: list[SkippedLineModel]
