from __future__ import annotations
import argparse, dataclasses, json, pathlib, sys, traceback
from . import analyze, process, write
from .config import load_config, get_time_signature
from .util.time import parse_time_signature

def _rhythm_to_dict(parsed) -> dict:
    d = dataclasses.asdict(parsed)
    # JSON kennt nur String-Keys
    d["measure_source_mapping"] = {str(k): v for k, v in parsed.measure_source_mapping.items()}
    return d

def main(argv=None):
    p = argparse.ArgumentParser(description="Darbuka rhythm notation -> MIDI")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--notation", dest="notation", help="Notation string, e.g. 'D-T-__K-D---T---'")
    src.add_argument("--in", dest="infile", help="Text file containing the notation")
    p.add_argument("--time", dest="time", default=None, help="Time signature, e.g. 4/4 or 7/8 (default from config)")
    p.add_argument("--grouping", dest="grouping", default=None, help="Beat grouping override, e.g. 3+2+2")
    p.add_argument("--config", dest="config", default=None, help="YAML config (defaults applied if omitted)")
    p.add_argument("--out", dest="outfile", default=None, help="Output MIDI file (.mid)")
    p.add_argument("--conductor-out", dest="conductor_out", default=None, help="Write a conductor-only MIDI (tempo/time signature)")
    p.add_argument("--json", action="store_true", help="Print the parsed rhythm as JSON")
    p.add_argument("--metronome", action="store_true", help="Add metronome clicks to the MIDI output")

    args = p.parse_args(argv)
    # bei --json bleibt stdout reines JSON
    log = sys.stderr if args.json else sys.stdout

    if args.infile:
        in_path = pathlib.Path(args.infile).expanduser().resolve()
        if not in_path.exists():
            print(f"[cli] ERROR: Input not found: {in_path}", file=sys.stderr)
            sys.exit(1)
        notation = in_path.read_text(encoding="utf-8")
        print(f"[cli] infile = {in_path}", file=log)
    else:
        notation = args.notation

    cfg = load_config(args.config)
    if args.metronome:
        cfg.setdefault("metronome", {})["enabled"] = True

    try:
        if args.time:
            ts = parse_time_signature(args.time, args.grouping)
        else:
            if args.grouping:
                cfg["beat_grouping"] = args.grouping
            ts = get_time_signature(cfg)
    except ValueError as exc:
        print(f"[cli] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        parsed = analyze.parse_rhythm(notation, ts)
        bundle = process.build_timelines(parsed, cfg)
    except Exception:
        traceback.print_exc()
        sys.exit(2)

    if not parsed.is_valid:
        print(f"[cli] WARNING: {parsed.error}", file=log)

    if args.json:
        print(json.dumps(_rhythm_to_dict(parsed), indent=2))

    if args.outfile:
        out_path = pathlib.Path(args.outfile).expanduser().resolve()
        write.write_midi(bundle, str(out_path))
        print(f"[cli] midi      -> {out_path}", file=log)

    if args.conductor_out:
        cond_path = pathlib.Path(args.conductor_out).expanduser().resolve()
        write.write_conductor_only(bundle, str(cond_path))
        print(f"[cli] conductor -> {cond_path}", file=log)

    repeats = len(parsed.repeats or [])
    print(f"[cli] Done. time={ts} measures={len(parsed.measures)} hits={len(bundle.hits)} repeats={repeats} valid={parsed.is_valid}", file=log)
