"""Persistent store for dashboard targets, partner merges and manual match overrides."""

from __future__ import annotations

import json
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from src.calculations.normalization import normalize_partner
from src.calculations.projections import monthly_target_from_annual
from src.utils.logging import get_logger

LOGGER = get_logger(__name__)

SETTINGS_FILENAME = '.mca_dashboard_settings.json'
STORE_VERSION = 1
DEFAULT_ANNUAL_TARGET = 360_000_000.0


@dataclass(frozen=True)
class DashboardConfig:
    monthly_target: float
    annual_target: float
    partner_merges: dict[str, list[str]] = field(default_factory=dict)
    match_overrides: dict[str, str | None] = field(default_factory=dict)


def _default_payload() -> dict[str, Any]:
    return {
        'version': STORE_VERSION,
        'annual_target': DEFAULT_ANNUAL_TARGET,
        'monthly_target': None,
        'partner_merges': {},
        'match_overrides': {},
    }


def _positive_or_none(value: Any) -> float | None:
    number = pd.to_numeric(value, errors='coerce')
    if pd.isna(number) or float(number) <= 0.0:
        return None
    return float(number)


def _normalize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    out = _default_payload()
    if not isinstance(payload, dict):
        return out
    out['version'] = int(payload.get('version', STORE_VERSION))
    out['annual_target'] = _positive_or_none(payload.get('annual_target')) or DEFAULT_ANNUAL_TARGET
    out['monthly_target'] = _positive_or_none(payload.get('monthly_target'))

    merges = payload.get('partner_merges', {})
    if isinstance(merges, dict):
        out['partner_merges'] = {
            str(name).strip(): [str(m) for m in members]
            for name, members in merges.items()
            if str(name).strip() and isinstance(members, list)
        }

    overrides = payload.get('match_overrides', {})
    if isinstance(overrides, dict):
        out['match_overrides'] = {
            str(sub): (None if deal is None else str(deal)) for sub, deal in overrides.items() if str(sub).strip()
        }
    return out


def load_settings(path: str) -> dict[str, Any]:
    """Load settings from disk. Missing file returns defaults."""
    p = Path(path)
    if not p.exists():
        return _default_payload()
    with p.open('r', encoding='utf-8') as f:
        raw = json.load(f)
    return _normalize_payload(raw)


def save_settings(path: str, payload: dict[str, Any]) -> None:
    """Persist settings payload to disk."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    normalized = _normalize_payload(payload)
    with p.open('w', encoding='utf-8') as f:
        json.dump(normalized, f, indent=2, ensure_ascii=True)


def validate_partner_merge(payload: dict[str, Any], merged_name: str, members: list[str]) -> tuple[bool, str]:
    """Validate a merge group before it is stored."""
    name = str(merged_name).strip()
    if not name:
        return False, 'Merged partner name is required.'
    cleaned = [str(m).strip() for m in members if str(m).strip()]
    if len(cleaned) < 2:
        return False, 'A merge needs at least two partners.'
    normalized = [normalize_partner(m) for m in cleaned]
    if len(set(normalized)) != len(normalized):
        return False, 'Merge members must be distinct partners.'
    existing = _normalize_payload(payload)['partner_merges']
    for other, other_members in existing.items():
        if other == name:
            continue
        taken = {normalize_partner(m) for m in other_members} & set(normalized)
        if taken:
            return False, f'{sorted(taken)[0]} is already merged into {other}.'
    return True, ''


def add_partner_merge(payload: dict[str, Any], merged_name: str, members: list[str]) -> dict[str, Any]:
    """Add or replace a merge group; invalid groups raise ValueError."""
    ok, message = validate_partner_merge(payload, merged_name, members)
    if not ok:
        raise ValueError(message)
    out = deepcopy(_normalize_payload(payload))
    out['partner_merges'][str(merged_name).strip()] = [str(m).strip() for m in members if str(m).strip()]
    return out


def remove_partner_merge(payload: dict[str, Any], merged_name: str) -> dict[str, Any]:
    out = deepcopy(_normalize_payload(payload))
    out['partner_merges'].pop(str(merged_name).strip(), None)
    return out


def set_match_override(payload: dict[str, Any], submission_name: str, deal_name: str | None) -> dict[str, Any]:
    """Bind a submission to a funding deal name, or pass None to force-skip it."""
    sub = str(submission_name).strip()
    if not sub:
        raise ValueError('Submission name is required for a match override.')
    out = deepcopy(_normalize_payload(payload))
    out['match_overrides'][sub] = None if deal_name is None else str(deal_name).strip()
    LOGGER.info('Match override for %r set to %r', sub, out['match_overrides'][sub])
    return out


def clear_match_override(payload: dict[str, Any], submission_name: str) -> dict[str, Any]:
    out = deepcopy(_normalize_payload(payload))
    out['match_overrides'].pop(str(submission_name).strip(), None)
    return out


def build_dashboard_config(payload: dict[str, Any]) -> DashboardConfig:
    """Resolve stored settings; the monthly target falls back to annual / 12."""
    normalized = _normalize_payload(payload)
    annual = float(normalized['annual_target'])
    monthly = normalized['monthly_target'] or monthly_target_from_annual(annual)
    return DashboardConfig(
        monthly_target=float(monthly),
        annual_target=annual,
        partner_merges=deepcopy(normalized['partner_merges']),
        match_overrides=dict(normalized['match_overrides']),
    )
