from __future__ import annotations
from typing import Dict, List, Tuple

SIMILE_TICKS = 16   # '%' zählt immer als ganzer 4/4-Takt

NOTATION_MAP: Dict[str, str] = {
    "D": "dum", "d": "dum",
    "T": "tak", "t": "tak",
    "K": "ka", "k": "ka",
    "S": "slap", "s": "slap",
    "_": "rest", "-": "rest",
    "%": "simile",
}

def token_length(text: str, i: int) -> Tuple[int, int]:
    """
    Länge des Tokens ab Position i und Index hinter dem Token.
    Fortsetzung: '_' für Pausen, '-' für alle anderen Zeichen.
    """
    cont = "_" if text[i] == "_" else "-"
    j = i + 1
    while j < len(text) and text[j] == cont:
        j += 1
    duration = SIMILE_TICKS if text[i] == "%" else j - i
    return duration, j

def count_measures(text: str, ticks_per_measure: int) -> int:
    """Anzahl Takte im Fragment; ein angefangener Schlusstakt zählt mit."""
    count = 0
    acc = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "|":
            if acc > 0:
                count += 1
                acc = 0
            i += 1
            continue
        if ch in NOTATION_MAP:
            dur, i = token_length(text, i)
            acc += dur
            while acc >= ticks_per_measure:
                count += 1
                acc -= ticks_per_measure
            continue
        i += 1
    if acc > 0:
        count += 1
    return count

def count_ticks(text: str, ticks_per_measure: int) -> int:
    """Rohe Tick-Summe; ein Taktstrich füllt den angefangenen Takt auf."""
    total = 0
    acc = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "|":
            rem = acc % ticks_per_measure
            if rem:
                total += ticks_per_measure - rem
            acc = 0
            i += 1
            continue
        if ch in NOTATION_MAP:
            dur, i = token_length(text, i)
            total += dur
            acc += dur
            continue
        i += 1
    return total

def measure_offsets(text: str, base_index: int, ticks_per_measure: int) -> List[int]:
    """
    Startoffset (base_index + i) des ersten Notenzeichens jedes Takts.
    Whitespace und führende Taktstriche werden übersprungen; ein Token,
    das über die Taktgrenze reicht, beginnt auch den Folgetakt.
    """
    offsets: List[int] = []
    acc = 0
    open_measure = False
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "|":
            if acc > 0:
                open_measure = False
                acc = 0
            i += 1
            continue
        if ch in NOTATION_MAP:
            if not open_measure:
                offsets.append(base_index + i)
                open_measure = True
            dur, j = token_length(text, i)
            acc += dur
            while acc >= ticks_per_measure:
                acc -= ticks_per_measure
                if acc == 0:
                    open_measure = False
                else:
                    offsets.append(base_index + i)
            i = j
            continue
        i += 1
    return offsets
