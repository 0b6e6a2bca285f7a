# src/rhythm2midi/analyze.py
from __future__ import annotations
from dataclasses import replace
from typing import List, Sequence, Tuple
import logging

from .timeline import Note, Measure, TimeSignature, ParsedRhythm, MeasureDefinition, NoteDuration
from .repeats import expand_repeats
from .resolve import resolve_similes, detect_identical_measures, build_source_mapping
from .validate import validate_measures
from .util.ticks import NOTATION_MAP, SIMILE_TICKS, token_length
from .util.time import ticks_per_measure

logger = logging.getLogger(__name__)

def duration_type(sixteenths: int) -> Tuple[NoteDuration, bool]:
    """Anzeige-Kategorie (duration, is_dotted) aus der Tickzahl."""
    if sixteenths == 24: return "whole", True
    if sixteenths >= 16: return "whole", False
    if sixteenths == 12: return "half", True
    if sixteenths >= 8:  return "half", False
    if sixteenths == 6:  return "quarter", True
    if sixteenths >= 4:  return "quarter", False
    if sixteenths == 3:  return "eighth", True
    if sixteenths >= 2:  return "eighth", False
    return "sixteenth", False

def _sized(note: Note, sixteenths: int, **flags) -> Note:
    dur, dotted = duration_type(sixteenths)
    return replace(note, duration=dur, duration_in_sixteenths=sixteenths, is_dotted=dotted, **flags)

def _rest(sixteenths: int) -> Note:
    return _sized(Note("rest", "sixteenth", 0), sixteenths)

# --- Tokenizer ---

def tokenize(notation: str) -> List[Note]:
    """Flache (bereits expandierte) Notation -> rohe Notes inkl. Taktstrich/Simile."""
    notes: List[Note] = []
    i = 0
    while i < len(notation):
        ch = notation[i]
        if ch == "|":
            notes.append(Note("rest", "sixteenth", 0, is_barline=True))
            i += 1
            continue
        if ch not in NOTATION_MAP:
            i += 1
            continue
        if ch == "%":
            # einzelnes Zeichen; folgende '-' sind eigene Pausen
            notes.append(Note("simile", "whole", SIMILE_TICKS, is_measure_filler=True))
            i += 1
            continue
        dur, i = token_length(notation, i)
        notes.append(_sized(Note(NOTATION_MAP[ch], "sixteenth", 0), dur))
    return notes

# --- Takte & Bindebögen ---

def split_into_measures(notes: Sequence[Note], capacity: int) -> List[Measure]:
    measures: List[Measure] = []
    current: List[Note] = []
    filled = 0

    for note in notes:
        if note.is_barline:
            if current:
                if filled < capacity:
                    current.append(_rest(capacity - filled))
                    filled = capacity
                measures.append(Measure(current, filled))
            current, filled = [], 0
            continue

        if note.is_measure_filler:
            current.append(_sized(note, capacity - filled, is_measure_filler=False))
            measures.append(Measure(current, capacity))
            current, filled = [], 0
            continue

        original = note.duration_in_sixteenths
        remaining = original
        first = True
        while remaining > 0:
            space = capacity - filled
            if remaining <= space:
                if first:
                    current.append(_sized(note, remaining))
                else:
                    current.append(_sized(note, remaining, is_tied_from=True, tied_duration=original))
                filled += remaining
                remaining = 0
            else:
                current.append(_sized(note, space, is_tied_to=True, is_tied_from=not first,
                                      tied_duration=original))
                filled += space
                remaining -= space
                first = False
            if filled == capacity:
                measures.append(Measure(current, filled))
                current, filled = [], 0

    # angefangener Schlusstakt bleibt ungepolstert
    if current:
        measures.append(Measure(current, filled))
    return measures

def _fit_mapping(mapping: Sequence[MeasureDefinition], count: int) -> List[MeasureDefinition]:
    out = list(mapping[:count])
    while len(out) < count:
        offset = out[-1].source_string_index if out else 0
        out.append(MeasureDefinition(len(out), offset))
    return out

def parse_rhythm(notation: str, time_signature: TimeSignature) -> ParsedRhythm:
    """
    Notation + Taktart -> ParsedRhythm.
    Falsche Taktlängen machen das Ergebnis nur ungültig (is_valid=False);
    interne Fehler liefern ein leeres Ergebnis mit Fehlermeldung.
    """
    if not notation or not notation.strip():
        return ParsedRhythm(measures=[], time_signature=time_signature, is_valid=True)
    try:
        capacity = ticks_per_measure(time_signature)
        expansion = expand_repeats(notation, capacity)
        notes = tokenize(expansion.notation)
        if not notes:
            return ParsedRhythm(measures=[], time_signature=time_signature, is_valid=True)

        measures = split_into_measures(notes, capacity)
        measures, simile_repeats = resolve_similes(measures)
        repeats = detect_identical_measures(measures, list(expansion.repeats) + simile_repeats)
        is_valid, error = validate_measures(measures, capacity)

        return ParsedRhythm(
            measures=measures,
            time_signature=time_signature,
            is_valid=is_valid,
            error=error,
            repeats=repeats or None,
            measure_source_mapping=build_source_mapping(repeats),
            measure_mapping=_fit_mapping(expansion.mapping, len(measures)),
        )
    except Exception as exc:
        logger.exception("parse_rhythm failed for %r", notation)
        return ParsedRhythm(
            measures=[],
            time_signature=time_signature,
            is_valid=False,
            error=str(exc) or exc.__class__.__name__,
        )
