# src/rhythm2midi/config.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
import copy
import yaml

from .timeline import TimeSignature, DEFAULT_TPB
from .util.time import parse_time_signature

# Paket-Root: .../src/rhythm2midi
PKG_ROOT = Path(__file__).resolve().parent
DEFAULT_CFG_PATH = PKG_ROOT / "config.default.yaml"
USER_CFG_PATH = Path.home() / ".config" / "rhythm2midi" / "config.yaml"

def _safe_load(path: Path) -> Dict[str, Any]:
    try:
        if path.exists():
            return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        # kaputte/unlesbare Datei -> keine Overrides
        pass
    return {}

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out

def load_config(
    user_path: Optional[Path] = None,
    default_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Lädt die Konfiguration (Default + User-Overrides) und liefert ein gemergtes Dict.
    Der Parser selbst braucht nur die Taktart; Tempo, Drum-Map und Akzente
    gelten für Timeline und MIDI-Export.
    """
    dpath = Path(default_path) if default_path else DEFAULT_CFG_PATH
    upath = Path(user_path) if user_path else USER_CFG_PATH

    defaults = _safe_load(dpath)
    user = _safe_load(upath)
    cfg = _deep_merge(defaults, user)

    # Minimal-Defaults sicherstellen
    cfg.setdefault("ticks_per_beat", DEFAULT_TPB)
    cfg.setdefault("time_signature", "4/4")
    cfg.setdefault("drum_channel", 9)
    cfg.setdefault("drum_map", {"dum": 36, "tak": 38, "ka": 37, "slap": 39})

    return cfg

def get_ticks_per_beat(cfg: Dict[str, Any]) -> int:
    """Bequemer Accessor."""
    try:
        return int(cfg.get("ticks_per_beat", DEFAULT_TPB))
    except (TypeError, ValueError):
        return DEFAULT_TPB

def get_time_signature(cfg: Dict[str, Any]) -> TimeSignature:
    """Taktart aus der Config; ungültige Angaben werfen ValueError."""
    return parse_time_signature(str(cfg.get("time_signature") or "4/4"), cfg.get("beat_grouping"))
