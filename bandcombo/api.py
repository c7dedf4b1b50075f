from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import PlainTextResponse

from . import bands
from .combo import Combo, parse_combo_string
from .decoder import DecodeResult, decode
from .encoder import GroupingStrategy, encode
from .errors import DecompressionError, EncodeError, ParseError, CompressionError
from .models import (
    BandModel,
    ComboEntryModel,
    DecodeResponse,
    EncodeRequest,
    IssueModel,
    LimitsModel,
    ParseRequest,
    ParseResponse,
    ProfileModel,
    SkippedLineModel,
    ValidateRequest,
    ValidateResponse,
)
from .state import AppState
from .textio import parse_combo_file
from .validation import ComboLimits, validate_combo

logger = logging.getLogger(__name__)

router = APIRouter()

BINARY_MEDIA_TYPE = "application/octet-stream"


def get_state(request: Request) -> AppState:
    state: AppState | None = getattr(request.app.state, "app_state", None)
    if state is None:
        raise RuntimeError("AppState not initialized")
    return state


def auth_check(request: Request, state: AppState = Depends(get_state)) -> None:
    token = state.config.server.auth_token
    if token is None:
        return
    auth = request.headers.get("authorization") or request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    if auth.split(" ", 1)[1] != token:
        raise HTTPException(status_code=403, detail="Invalid token")


async def _read_upload(request: Request, state: AppState) -> bytes:
    limit = state.config.server.max_upload_bytes
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="Request body is empty")
    if len(body) > limit:
        raise HTTPException(status_code=413, detail=f"Upload exceeds {limit} bytes")
    return body


def _decode_upload(data: bytes) -> DecodeResult:
    try:
        return decode(data)
    except DecompressionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _merge_limits(base: ComboLimits, override: LimitsModel | None) -> ComboLimits:
    if override is None:
        return base
    return replace(
        base,
        max_cc=override.maxCc if override.maxCc is not None else base.max_cc,
        max_dl_cc=override.maxDlCc if override.maxDlCc is not None else base.max_dl_cc,
        max_ul_scell=override.maxUlScell if override.maxUlScell is not None else base.max_ul_scell,
        max_total_ul=override.maxTotalUl if override.maxTotalUl is not None else base.max_total_ul,
        allow_fdd_tdd_mix=(
            override.allowFddTddMix
            if override.allowFddTddMix is not None
            else base.allow_fdd_tdd_mix
        ),
    )


@router.get("/bands", response_model=list[BandModel])
def list_bands(common: bool = False) -> list[BandModel]:
    infos = bands.common_bands() if common else sorted(bands.BANDS.values(), key=lambda b: b.band)
    return [BandModel.from_info(info) for info in infos]


@router.get("/profiles", response_model=list[ProfileModel])
def list_profiles(state: AppState = Depends(get_state)) -> list[ProfileModel]:
    return [ProfileModel.from_profile(key, p) for key, p in state.profiles.items()]


@router.post("/decode", response_model=DecodeResponse)
async def decode_file(
    request: Request,
    _: None = Depends(auth_check),
    state: AppState = Depends(get_state),
) -> DecodeResponse:
    """Decode a raw NV 28874 buffer (optionally zlib-compressed) sent as the request body."""
    result = _decode_upload(await _read_upload(request, state))
    logger.info("Decoded upload: %d combos, %d errors", result.num_combos, len(result.errors))
    return DecodeResponse.from_result(result)


@router.post("/decode/text", response_class=PlainTextResponse)
async def decode_file_text(
    request: Request,
    _: None = Depends(auth_check),
    state: AppState = Depends(get_state),
) -> str:
    """Decode a raw buffer and return the plain-text combo report."""
    result = _decode_upload(await _read_upload(request, state))
    return result.to_text()


@router.post("/encode")
def encode_combos(
    req: EncodeRequest,
    _: None = Depends(auth_check),
    state: AppState = Depends(get_state),
) -> Response:
    """Encode a combo list. The binary is the response body; metadata is in X-* headers."""
    options = state.encode_options()
    if req.strategy is not None:
        options.strategy = GroupingStrategy(req.strategy)
    if req.descriptorType is not None:
        options.descriptor_type = req.descriptorType
    if req.optimizeGrouping is not None:
        options.optimize_grouping = req.optimizeGrouping
    if req.compress is not None:
        options.compress = req.compress
    if req.formatVersion is not None:
        options.format_version = req.formatVersion
    if req.maxUlPerCombo is not None:
        options.max_ul_per_combo = req.maxUlPerCombo

    combos: list[Combo] = []
    for item in req.combo_items():
        try:
            combo = parse_combo_string(item.text)
        except ParseError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        combos.append(replace(combo, group_index=item.groupIdx))

    original_groups = [g.to_group() for g in req.originalGroups] if req.originalGroups else None
    try:
        result = encode(combos, options, original_groups=original_groups)
    except (EncodeError, CompressionError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    headers: dict[str, str] = {
        "X-Descriptor-Count": str(result.descriptor_count),
        "X-Group-Count": str(len(result.groups)),
        "X-Raw-Size": str(result.raw_size),
        "X-Compressed": "true" if result.compressed else "false",
        "X-Warning-Count": str(len(result.warnings)),
        "Content-Disposition": 'attachment; filename="00028874"',
    }
    if result.compression_ratio is not None:
        headers["X-Compression-Ratio"] = f"{result.compression_ratio:.1f}"
    return Response(content=result.data, media_type=BINARY_MEDIA_TYPE, headers=headers)


@router.post("/validate", response_model=ValidateResponse)
def validate(req: ValidateRequest, state: AppState = Depends(get_state)) -> ValidateResponse:
    try:
        combo = parse_combo_string(req.combo)
    except ParseError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    try:
        profile = state.profile(req.profile)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown device profile: {req.profile}") from e

    pcell_index = req.pcellIndex if req.pcellIndex is not None else combo.pcell_index
    if pcell_index is not None and pcell_index >= len(combo.carriers):
        raise HTTPException(status_code=422, detail="pcellIndex out of range")
    result = validate_combo(
        combo.carriers,
        _merge_limits(state.limits, req.limits),
        pcell_index=pcell_index,
        profile=profile,
    )
    return ValidateResponse(
        combo=combo.text,
        streams=combo.streams,
        hasULCA=combo.has_ulca,
        valid=result.valid,
        errors=[IssueModel.from_issue(i) for i in result.errors],
        warnings=[IssueModel.from_issue(i) for i in result.warnings],
    )


@router.post("/parse", response_model=ParseResponse)
def parse_list(req: ParseRequest) -> ParseResponse:
    result = parse_combo_file(req.text, recalculate=req.recalculate)
    entries = [
        ComboEntryModel(
            text=e.text,
            streams=e.streams,
            hasULCA=e.has_ulca,
            pcellIndex=e.combo.pcell_index,
        )
        for e in result.entries
    ]
    skipped = [
        SkippedLineModel(lineNumber=s.line_number, line=s.line, reason=s.reason)
        for s in result.skipped
    ]
    return ParseResponse(entries=entries, skipped=skipped)


def describe_routes() -> list[dict[str, Any]]:
    return [
        {"path": route.path, "methods": sorted(getattr(route, "methods", []) or [])}
        for route in router.routes
    ]
