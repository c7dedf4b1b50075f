"""Structural validation of carrier aggregation combos.

Every rule is evaluated independently and reported as data; nothing here
raises for an invalid combo. Only an empty carrier list short-circuits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, Mapping, Sequence

from . import bands
from .bands import DuplexMode
from .combo import MAX_CC, Carrier, ul_carriers

Severity = Literal["error", "warning"]

BAND_MIN = 1
BAND_MAX = 0xFFFF
CLASS_MIN = 0
CLASS_MAX = 0xFF
MIMO_BYTE_MAX = 0xFF
MIMO_DIGITS_MAX = 99_999_999

# Error codes
EMPTY_COMBO = "EMPTY_COMBO"
FDD_TDD_MIX = "FDD_TDD_MIX"
SDL_WITH_UL = "SDL_WITH_UL"
EXCEED_MAX_CC = "EXCEED_MAX_CC"
EXCEED_MAX_DL_CC = "EXCEED_MAX_DL_CC"
EXCEED_MAX_UL_SCELL = "EXCEED_MAX_UL_SCELL"
EXCEED_MAX_TOTAL_UL = "EXCEED_MAX_TOTAL_UL"
EXCEED_NV_LIMIT = "EXCEED_NV_LIMIT"
# Warning codes
INVALID_BAND = "INVALID_BAND"
UNSUPPORTED_BAND = "UNSUPPORTED_BAND"
UNSUPPORTED_MIMO = "UNSUPPORTED_MIMO"


@dataclass
class ComboLimits:
    max_cc: int = MAX_CC
    max_dl_cc: int = 5
    max_ul_scell: int = 1
    max_total_ul: int = 2
    allow_fdd_tdd_mix: bool = False


@dataclass(frozen=True)
class DeviceProfile:
    """Capability ceilings of a device family.

    An empty ``supported_bands`` means every band is allowed; bands missing
    from ``band_mimo`` accept any MIMO value.
    """

    name: str
    max_dl_cc: int = 5
    max_ul_scell: int = 1
    max_total_ul: int = 2
    supported_bands: tuple[int, ...] = ()
    band_mimo: Mapping[int, tuple[int, ...]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "maxDlCc": self.max_dl_cc,
            "maxUlScell": self.max_ul_scell,
            "maxTotalUl": self.max_total_ul,
            "supportedBands": list(self.supported_bands),
            "bandMimo": {str(b): list(m) for b, m in self.band_mimo.items()},
        }


DEFAULT_PROFILE = DeviceProfile(name="Default")

DEVICE_PROFILES: Mapping[str, DeviceProfile] = MappingProxyType(
    {
        "generic-cat6": DeviceProfile("Generic Cat 6", 2, 0, 1),
        "generic-cat9": DeviceProfile("Generic Cat 9", 3, 0, 1),
        "generic-cat12": DeviceProfile("Generic Cat 12", 3, 0, 1),
        "generic-cat16": DeviceProfile("Generic Cat 16", 4, 0, 1),
        "generic-cat18": DeviceProfile("Generic Cat 18", 5, 1, 2),
        "generic-cat20": DeviceProfile("Generic Cat 20", 5, 1, 2),
        "mifi-8800l": DeviceProfile(
            "MiFi 8800L",
            5,
            1,
            2,
            supported_bands=(1, 2, 3, 4, 5, 7, 8, 12, 13, 20, 25, 26, 28, 29, 30, 66),
            band_mimo={2: (2, 4), 4: (2, 4), 66: (2, 4)},
        ),
    }
)


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    severity: Severity = "error"
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": dict(self.details),
        }


@dataclass
class ValidationResult:
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in (*self.errors, *self.warnings)]

    def has(self, code: str) -> bool:
        return code in self.codes

    def summary(self) -> str:
        lines = ["Combo is valid" if self.valid else "Combo has validation errors:"]
        lines.extend(f"  [ERROR] {issue.message}" for issue in self.errors)
        lines.extend(f"  [WARN] {issue.message}" for issue in self.warnings)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


def _error(code: str, message: str, **details: Any) -> ValidationIssue:
    return ValidationIssue(code, message, "error", details)


def _warning(code: str, message: str, **details: Any) -> ValidationIssue:
    return ValidationIssue(code, message, "warning", details)


def _total_cc(carriers: Sequence[Carrier]) -> int:
    return sum(c.cc_count for c in carriers)


def _check_bands_known(carriers: Sequence[Carrier]) -> ValidationIssue | None:
    unknown = [c.band for c in carriers if bands.lookup(c.band) is None]
    if not unknown:
        return None
    return _warning(
        INVALID_BAND,
        f"Unknown bands: {', '.join(map(str, unknown))}. These may not be valid LTE bands.",
        unknown_bands=unknown,
    )


def _check_duplex_mix(carriers: Sequence[Carrier]) -> ValidationIssue | None:
    band_numbers = [c.band for c in carriers]
    if not bands.analyze_mix(band_numbers).is_mixed:
        return None
    fdd = [b for b in band_numbers if bands.is_fdd(b)]
    tdd = [b for b in band_numbers if bands.is_tdd(b)]
    return _error(
        FDD_TDD_MIX,
        "FDD and TDD bands cannot be mixed in one combo. "
        f"FDD bands: {', '.join(map(str, fdd))}. TDD bands: {', '.join(map(str, tdd))}.",
        fdd_bands=fdd,
        tdd_bands=tdd,
    )


def _check_sdl_uplink(carriers: Sequence[Carrier]) -> ValidationIssue | None:
    offending = [c.band for c in carriers if c.ul_class and bands.is_sdl(c.band)]
    if not offending:
        return None
    return _error(
        SDL_WITH_UL,
        f"SDL bands cannot have uplink: {', '.join(f'B{b}' for b in offending)}.",
        bands=offending,
    )


def _check_total_cc(carriers: Sequence[Carrier], max_cc: int) -> ValidationIssue | None:
    total = _total_cc(carriers)
    if total <= max_cc:
        return None
    return _error(
        EXCEED_MAX_CC,
        f"Total CC count ({total}) exceeds maximum ({max_cc}).",
        total_cc=total,
        max_cc=max_cc,
    )


def _check_dl_cc(carriers: Sequence[Carrier], max_dl_cc: int) -> ValidationIssue | None:
    total = _total_cc(carriers)
    if total <= max_dl_cc:
        return None
    return _error(
        EXCEED_MAX_DL_CC,
        f"Total DL CC count ({total}) exceeds maximum ({max_dl_cc}).",
        total_dl_cc=total,
        max_dl_cc=max_dl_cc,
    )


def _check_ul_scell(
    carriers: Sequence[Carrier], pcell_index: int, max_ul_scell: int
) -> ValidationIssue | None:
    count = sum(1 for i, c in enumerate(carriers) if i != pcell_index and c.ul_class)
    if count <= max_ul_scell:
        return None
    return _error(
        EXCEED_MAX_UL_SCELL,
        f"UL SCell count ({count}) exceeds maximum ({max_ul_scell}).",
        ul_scell_count=count,
        max_ul_scell=max_ul_scell,
    )


def _check_total_ul(carriers: Sequence[Carrier], max_total_ul: int) -> ValidationIssue | None:
    count = len(ul_carriers(carriers))
    if count <= max_total_ul:
        return None
    return _error(
        EXCEED_MAX_TOTAL_UL,
        f"Total UL carrier count ({count}) exceeds maximum ({max_total_ul}).",
        ul_count=count,
        max_total_ul=max_total_ul,
    )


def _check_profile(carriers: Sequence[Carrier], profile: DeviceProfile) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if profile.supported_bands:
        unsupported = [c.band for c in carriers if c.band not in profile.supported_bands]
        if unsupported:
            issues.append(
                _warning(
                    UNSUPPORTED_BAND,
                    f"Bands not supported by {profile.name}: "
                    f"{', '.join(map(str, unsupported))}.",
                    unsupported_bands=unsupported,
                    profile_name=profile.name,
                )
            )
    for carrier in carriers:
        allowed = profile.band_mimo.get(carrier.band)
        mimo = carrier.mimo_dl or 2
        if allowed and mimo not in allowed:
            issues.append(
                _warning(
                    UNSUPPORTED_MIMO,
                    f"MIMO {mimo} not supported on Band {carrier.band}. "
                    f"Supported: {', '.join(map(str, allowed))}.",
                    band=carrier.band,
                    requested_mimo=mimo,
                    supported_mimo=list(allowed),
                )
            )
    return issues


def validate_combo(
    carriers: Sequence[Carrier],
    limits: ComboLimits | None = None,
    *,
    pcell_index: int | None = None,
    profile: DeviceProfile | None = None,
) -> ValidationResult:
    """Check a carrier list against the structural rules.

    ``pcell_index`` is a position in ``carriers`` exactly as passed; it
    defaults to 0. Normalize the combo first (``combo.normalize_combo``)
    if the index must follow a reordered carrier.

    When ``profile`` is given its DL CC, UL SCell and total UL ceilings
    replace the ones in ``limits``.
    """
    limits = limits or ComboLimits()
    result = ValidationResult()
    if not carriers:
        result.errors.append(_error(EMPTY_COMBO, "Combo must have at least one carrier."))
        return result

    max_dl_cc = profile.max_dl_cc if profile else limits.max_dl_cc
    max_ul_scell = profile.max_ul_scell if profile else limits.max_ul_scell
    max_total_ul = profile.max_total_ul if profile else limits.max_total_ul
    pcell = 0 if pcell_index is None else pcell_index

    checks = [
        None if limits.allow_fdd_tdd_mix else _check_duplex_mix(carriers),
        _check_sdl_uplink(carriers),
        _check_total_cc(carriers, limits.max_cc),
        _check_dl_cc(carriers, max_dl_cc),
        _check_ul_scell(carriers, pcell, max_ul_scell),
        _check_total_ul(carriers, max_total_ul),
        _check_bands_known(carriers),
    ]
    if profile is not None:
        checks.extend(_check_profile(carriers, profile))

    for issue in checks:
        if issue is None:
            continue
        if issue.severity == "error":
            result.errors.append(issue)
        else:
            result.warnings.append(issue)
    return result


def is_combo_valid(
    carriers: Sequence[Carrier],
    limits: ComboLimits | None = None,
    *,
    pcell_index: int | None = None,
    profile: DeviceProfile | None = None,
) -> bool:
    return validate_combo(carriers, limits, pcell_index=pcell_index, profile=profile).valid


def validate_for_encoding(
    carriers: Sequence[Carrier], limits: ComboLimits | None = None
) -> ValidationResult:
    """validate_combo plus the six-slot ceiling of the descriptor format."""
    result = validate_combo(carriers, limits)
    total = _total_cc(carriers)
    if total > MAX_CC:
        result.errors.append(
            _error(
                EXCEED_NV_LIMIT,
                f"Total CC count ({total}) exceeds NV format limit of {MAX_CC}",
                total_cc=total,
            )
        )
    return result


def resolve_profile(
    name: str | None, extra: Mapping[str, DeviceProfile] | None = None
) -> DeviceProfile | None:
    """Look up a profile by key; ``extra`` entries shadow the built-ins."""
    if not name:
        return None
    if extra and name in extra:
        return extra[name]
    profile = DEVICE_PROFILES.get(name)
    if profile is None:
        raise KeyError(f"Unknown device profile: {name}")
    return profile


def validate_int_range(
    value: Any,
    min_value: int,
    max_value: int,
    label: str,
) -> tuple[bool, str]:
    try:
        int_value = int(value)
    except (TypeError, ValueError):
        return False, f"{label} is not an int"
    if int_value < min_value or int_value > max_value:
        return (
            False,
            f"{label} out of range {min_value}-{max_value} (got {int_value})",
        )
    return True, ""


def validate_band(band: Any) -> tuple[bool, str]:
    return validate_int_range(band, BAND_MIN, BAND_MAX, "band")


def validate_class_value(value: Any, label: str = "class") -> tuple[bool, str]:
    return validate_int_range(value, CLASS_MIN, CLASS_MAX, label)


def validate_mimo(value: Any, desc_type: int) -> tuple[bool, str]:
    max_value = MIMO_DIGITS_MAX if desc_type == 333 else MIMO_BYTE_MAX
    return validate_int_range(value, 0, max_value, "mimo")


__all__ = [
    "DEFAULT_PROFILE",
    "DEVICE_PROFILES",
    "ComboLimits",
    "DeviceProfile",
    "ValidationIssue",
    "ValidationResult",
    "is_combo_valid",
    "resolve_profile",
    "validate_band",
    "validate_class_value",
    "validate_combo",
    "validate_for_encoding",
    "validate_int_range",
    "validate_mimo",
]
