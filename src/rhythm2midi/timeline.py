from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Literal, Union

DEFAULT_TPB = 480
DEFAULT_BPM = 120.0

DrumSound = Literal["dum", "tak", "ka", "slap", "rest", "simile"]
NoteDuration = Literal["sixteenth", "eighth", "quarter", "half", "whole"]

# --- Pass 1: parsed notation ---

@dataclass
class Note:
    sound: DrumSound
    duration: NoteDuration
    duration_in_sixteenths: int          # Ground truth; duration/is_dotted sind nur Anzeige
    is_dotted: bool = False
    is_tied_from: bool = False           # Fortsetzung aus dem vorigen Takt
    is_tied_to: bool = False             # wird im nächsten Takt fortgesetzt
    tied_duration: Optional[int] = None  # ungeteilte Originallänge
    is_measure_filler: bool = False      # füllt den Resttakt (nur intern)
    is_barline: bool = False             # erzwingt Taktgrenze (nur intern)

@dataclass
class Measure:
    notes: List[Note] = field(default_factory=list)
    total_duration: int = 0

@dataclass
class TimeSignature:
    numerator: int = 4
    denominator: int = 4
    beat_grouping: Optional[List[int]] = None   # z.B. [3, 3, 2] für 8/8

    def __str__(self) -> str:
        return f"{self.numerator}/{self.denominator}"

@dataclass
class SectionRepeat:
    start_measure: int      # erster Takt der ersten Wiedergabe
    end_measure: int        # letzter Takt (inklusive)
    repeat_count: int       # zusätzliche Wiedergaben nach der ersten
    kind: Literal["section"] = "section"

@dataclass
class MeasureRepeat:
    source_measure: int
    repeat_measures: List[int] = field(default_factory=list)
    kind: Literal["measure"] = "measure"

RepeatMarker = Union[SectionRepeat, MeasureRepeat]

@dataclass(frozen=True)
class MeasureDefinition:
    source_measure_index: int   # Quelltakt im Grid (Linked Editing)
    source_string_index: int    # Zeichenoffset im Originalstring

@dataclass
class ParsedRhythm:
    measures: List[Measure]
    time_signature: TimeSignature
    is_valid: bool
    error: Optional[str] = None
    repeats: Optional[List[RepeatMarker]] = None
    measure_source_mapping: Dict[int, int] = field(default_factory=dict)
    measure_mapping: List[MeasureDefinition] = field(default_factory=list)

# --- Pass 2: playback timeline ---

@dataclass
class DrumHit:
    start_tick: int
    end_tick: int
    sound: str
    midi: int
    velocity: int
    measure_index: int
    note_index: int

@dataclass
class ClickEvent:
    tick: int
    midi: int
    velocity: int
    downbeat: bool

@dataclass
class PlaybackTimeline:
    hits: List[DrumHit] = field(default_factory=list)
    clicks: List[ClickEvent] = field(default_factory=list)
    tempo_bpm: float = DEFAULT_BPM
    time_signature: TimeSignature = field(default_factory=TimeSignature)
    channel: int = 9
    ticks_per_beat: int = DEFAULT_TPB
    total_ticks: int = 0
