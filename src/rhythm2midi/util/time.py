from __future__ import annotations
from typing import List, Optional, Tuple
from ..timeline import TimeSignature

ASYMMETRIC_GROUPINGS = {
    5: [3, 2],
    7: [3, 2, 2],
    8: [3, 3, 2],
    10: [3, 3, 2, 2],
    11: [3, 3, 3, 2],
    13: [3, 3, 3, 2, 2],
}

def sixteenths_to_ticks(sixteenths: int, tpb: int) -> int:
    # Eine Sechzehntel = Viertel/4
    return int(round(sixteenths * (tpb / 4.0)))

def ticks_per_measure(ts: TimeSignature) -> int:
    """Kapazität eines Takts in Sechzehnteln (numerator * 16 / denominator)."""
    if ts.numerator <= 0 or ts.denominator <= 0:
        raise ValueError(f"Invalid time signature {ts.numerator}/{ts.denominator}")
    total = ts.numerator * 16
    if total % ts.denominator:
        raise ValueError(f"Time signature {ts.numerator}/{ts.denominator} is not a whole number of sixteenths")
    return total // ts.denominator

def is_compound(ts: TimeSignature) -> bool:
    return ts.denominator == 8 and ts.numerator % 3 == 0

def is_asymmetric(ts: TimeSignature) -> bool:
    return ts.denominator == 8 and ts.numerator % 3 != 0

def _asymmetric_grouping(numerator: int) -> List[int]:
    if numerator in ASYMMETRIC_GROUPINGS:
        return list(ASYMMETRIC_GROUPINGS[numerator])
    groups = []
    remaining = numerator
    while remaining >= 3:
        groups.append(3)
        remaining -= 3
    if remaining > 0:
        groups.append(remaining)
    return groups

def default_beat_grouping(ts: TimeSignature) -> List[int]:
    """
    Gruppierung in Zählzeiten des Nenners:
      - explizite Angabe gewinnt
      - 6/8, 9/8, 12/8: Dreiergruppen
      - 5/8, 7/8, ...: Tabelle (3+2, 3+2+2, ...)
      - x/4: Viertel, als Sechzehntel-Gruppen [4, 4, ...]
    """
    if ts.beat_grouping:
        return list(ts.beat_grouping)
    if is_compound(ts):
        return [3] * (ts.numerator // 3)
    if is_asymmetric(ts):
        return _asymmetric_grouping(ts.numerator)
    if ts.denominator == 4:
        return [4] * ts.numerator
    return [ts.numerator]

def beat_grouping_in_sixteenths(grouping: List[int], ts: TimeSignature) -> List[int]:
    # /4-Gruppen sind bereits Sechzehntel, /8-Gruppen sind Achtel
    if ts.denominator == 4 and not ts.beat_grouping:
        return list(grouping)
    per_unit = 16 // ts.denominator if ts.denominator <= 16 else 1
    return [g * per_unit for g in grouping]

def beat_group_info(position: int, grouping: List[int]) -> Tuple[int, int, bool]:
    """(group_index, position_in_group, is_first_of_group) für eine Position im Takt."""
    current = 0
    for idx, size in enumerate(grouping):
        nxt = current + size
        if position < nxt:
            pos_in_group = position - current
            return idx, pos_in_group, pos_in_group == 0
        current = nxt
    return max(0, len(grouping) - 1), 0, False

def parse_beat_grouping(text: str) -> Optional[List[int]]:
    parts = [p.strip() for p in (text or "").strip().split("+")]
    if parts == [""]:
        return None
    out = []
    for p in parts:
        if not p.isdigit() or int(p) <= 0:
            return None
        out.append(int(p))
    return out or None

def format_beat_grouping(grouping: List[int]) -> str:
    return "+".join(str(g) for g in grouping)

def validate_beat_grouping(grouping: List[int], ts: TimeSignature) -> bool:
    return sum(grouping) == ts.numerator

def parse_time_signature(text: str, grouping: Optional[str] = None) -> TimeSignature:
    """'7/8' (+ optional '3+2+2') -> TimeSignature. Wirft ValueError bei Unsinn."""
    raw = (text or "").strip()
    num_s, sep, den_s = raw.partition("/")
    if not sep or not num_s.strip().isdigit() or not den_s.strip().isdigit():
        raise ValueError(f"Invalid time signature: {text!r}")
    ts = TimeSignature(int(num_s), int(den_s))
    ticks_per_measure(ts)  # validiert
    if grouping:
        groups = parse_beat_grouping(grouping)
        if groups is None or not validate_beat_grouping(groups, ts):
            raise ValueError(f"Beat grouping {grouping!r} does not fit {ts}")
        ts.beat_grouping = groups
    return ts
