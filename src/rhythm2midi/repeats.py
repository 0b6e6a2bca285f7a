# src/rhythm2midi/repeats.py
"""
Repeat-Expansion vor dem eigentlichen Tokenizer.

Pass 1: ``inhalt|xN``       -> letzter Takt des Inhalts N-mal (gesamt)
Pass 2: ``|: inhalt :| xN`` -> Abschnitt N+1-mal (Default N=1)

Jeder Pass liefert ein unveränderliches ExpansionResult (Text, Repeat-Marker,
MeasureDefinition pro Takt). Geister-Takte tragen exakt die Definition ihres
Quelltakts (Linked Editing).
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import logging
import re

from .timeline import MeasureDefinition, MeasureRepeat, SectionRepeat, RepeatMarker
from .util.ticks import NOTATION_MAP, count_measures, count_ticks, measure_offsets, token_length

logger = logging.getLogger(__name__)

SINGLE_REPEAT_RE = re.compile(r"([^|:]+?)\|x(\d+)")
SECTION_REPEAT_RE = re.compile(r"\|:\s*([\s\S]+?)\s*:\|\s*(?:x(\d+))?")

@dataclass(frozen=True)
class ExpansionResult:
    notation: str
    repeats: Tuple[RepeatMarker, ...] = ()
    mapping: Tuple[MeasureDefinition, ...] = ()

def pad_to_measure(content: str, ticks_per_measure: int) -> str:
    """Füllt den Inhalt mit Pausen auf ein Vielfaches der Taktlänge auf."""
    rem = count_ticks(content, ticks_per_measure) % ticks_per_measure
    if rem:
        return content + " " + "_" * (ticks_per_measure - rem)
    return content

def last_measure_cut(padded: str, ticks_per_measure: int) -> Optional[int]:
    """
    Zeichenindex, an dem der letzte Takt beginnt (0 bei nur einem Takt).
    None, wenn ein Token über diese Grenze reicht.
    """
    measures = count_measures(padded, ticks_per_measure)
    if measures <= 1:
        return 0
    target = (measures - 1) * ticks_per_measure
    acc = 0
    i = 0
    while i < len(padded):
        if acc == target:
            return i
        ch = padded[i]
        if ch == "|":
            rem = acc % ticks_per_measure
            if rem:
                acc += ticks_per_measure - rem
            i += 1
            continue
        if ch in NOTATION_MAP:
            dur, i = token_length(padded, i)
            acc += dur
            if acc > target:
                return None
            continue
        i += 1
    return None

def fresh_definitions(text: str, base_index: int, first_measure: int,
                      ticks_per_measure: int) -> List[MeasureDefinition]:
    """Neue, fortlaufende Definitionen für unexpandierten Text."""
    n = count_measures(text, ticks_per_measure)
    offs = measure_offsets(text, base_index, ticks_per_measure)
    return [
        MeasureDefinition(first_measure + m, offs[m] if m < len(offs) else base_index)
        for m in range(n)
    ]

# --- Pass 1 ---

def expand_single_repeats(notation: str, ticks_per_measure: int) -> ExpansionResult:
    parts: List[str] = []
    repeats: List[RepeatMarker] = []
    mapping: List[MeasureDefinition] = []
    last = 0

    for m in SINGLE_REPEAT_RE.finditer(notation):
        pre = notation[last:m.start()]
        parts.append(pre)
        mapping.extend(fresh_definitions(pre, last, len(mapping), ticks_per_measure))
        last = m.end()

        raw = m.group(1)
        content = raw.strip()
        if not content:
            continue
        content_start = m.start(1) + (len(raw) - len(raw.lstrip()))
        count = max(1, int(m.group(2)))

        padded = pad_to_measure(content, ticks_per_measure)
        cut = last_measure_cut(padded, ticks_per_measure)
        if cut is None:
            # Grenze liegt mitten in einem Token -> ganzer Block wiederholt
            cut = 0
        prefix, unit = padded[:cut], padded[cut:]

        if prefix:
            parts.append(prefix)
            mapping.extend(fresh_definitions(prefix, content_start, len(mapping), ticks_per_measure))

        source = len(mapping)
        unit_defs = fresh_definitions(unit, content_start + cut, source, ticks_per_measure)
        if not unit_defs:
            continue
        parts.append(" ".join([unit] * count) + " ")
        mapping.extend(unit_defs)

        size = len(unit_defs)
        ghosts: List[List[int]] = [[] for _ in range(size)]
        for r in range(1, count):
            for k, d in enumerate(unit_defs):
                ghosts[k].append(source + r * size + k)
                mapping.append(d)
        for k in range(size):
            if ghosts[k]:
                repeats.append(MeasureRepeat(source + k, ghosts[k]))
        logger.debug("single repeat x%d at %d: unit=%d measure(s) from %d",
                     count, content_start, size, source)

    suffix = notation[last:]
    parts.append(suffix)
    mapping.extend(fresh_definitions(suffix, last, len(mapping), ticks_per_measure))
    return ExpansionResult("".join(parts), tuple(repeats), tuple(mapping))

# --- Pass 2 ---

def _carry(previous: Tuple[MeasureDefinition, ...], consumed: int, n: int, first_out: int,
           index_map: Dict[int, int], fallback_offset: int) -> List[MeasureDefinition]:
    """
    Übernimmt n Definitionen aus dem vorigen Pass ab 'consumed' und
    verschiebt deren Quellindex in den neuen Taktraum.
    """
    out: List[MeasureDefinition] = []
    for k in range(n):
        in_idx = consumed + k
        out_idx = first_out + k
        if in_idx < len(previous):
            d = previous[in_idx]
            index_map[in_idx] = out_idx
            src = index_map.get(d.source_measure_index, d.source_measure_index + (out_idx - in_idx))
            out.append(MeasureDefinition(src, d.source_string_index))
        elif out:
            out.append(out[-1])
        else:
            out.append(MeasureDefinition(out_idx, fallback_offset))
    return out

def _remap(marker: RepeatMarker, index_map: Dict[int, int]) -> RepeatMarker:
    if isinstance(marker, MeasureRepeat):
        return MeasureRepeat(index_map.get(marker.source_measure, marker.source_measure),
                             [index_map.get(i, i) for i in marker.repeat_measures])
    return SectionRepeat(index_map.get(marker.start_measure, marker.start_measure),
                         index_map.get(marker.end_measure, marker.end_measure),
                         marker.repeat_count)

def expand_section_repeats(previous: ExpansionResult, ticks_per_measure: int) -> ExpansionResult:
    notation = previous.notation
    parts: List[str] = []
    sections: List[RepeatMarker] = []
    mapping: List[MeasureDefinition] = []
    index_map: Dict[int, int] = {}   # Takt aus Pass 1 -> Takt (erste Wiedergabe) hier
    consumed = 0
    last = 0

    for m in SECTION_REPEAT_RE.finditer(notation):
        pre = notation[last:m.start()]
        # '|' schließt einen angefangenen Takt vor dem Abschnitt
        parts.append(pre + "|")
        n = count_measures(pre, ticks_per_measure)
        mapping.extend(_carry(previous.mapping, consumed, n, len(mapping), index_map, last))
        consumed += n
        last = m.end()

        count = int(m.group(2)) if m.group(2) else 1
        padded = pad_to_measure(m.group(1).strip(), ticks_per_measure)
        size = count_measures(padded, ticks_per_measure)
        if size == 0:
            continue

        start = len(mapping)
        first = _carry(previous.mapping, consumed, size, start, index_map, m.start(1))
        consumed += size
        parts.append(" ".join([padded] * (count + 1)) + " ")
        mapping.extend(first)
        for _ in range(count):
            mapping.extend(first)
        if count >= 1:
            sections.append(SectionRepeat(start, start + size - 1, count))
        logger.debug("section repeat x%d: measures %d..%d", count, start, start + size - 1)

    suffix = notation[last:]
    parts.append(suffix)
    n = count_measures(suffix, ticks_per_measure)
    mapping.extend(_carry(previous.mapping, consumed, n, len(mapping), index_map, last))

    repeats = [_remap(r, index_map) for r in previous.repeats] + sections
    return ExpansionResult("".join(parts), tuple(repeats), tuple(mapping))

def expand_repeats(notation: str, ticks_per_measure: int) -> ExpansionResult:
    single = expand_single_repeats(notation, ticks_per_measure)
    return expand_section_repeats(single, ticks_per_measure)
