from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Iterable

from rich.console import Console
from rich.table import Table

from .audio import AudioBuffer, load_file
from .capabilities import advise, format_sample_rate, probe_capabilities
from .config import EngineConfig
from .errors import InvalidParamsError
from .logging_utils import configure_logging, debug_enabled, get_log_path, log_exception
from .params import ProcessingParams
from .playback import PlaybackScheduler, SoundDeviceTransport
from .presets import Preset, preset_names, preset_params
from .render import render
from .segments import Segment, constrain_segment
from .spinner import render_error, spinner
from .store import ParameterStore
from .upload import DirectoryUploader, build_filename, format_time_precise, submit
from .wav import encode_wav, parse_wav_header

_LOGGER = logging.getLogger("tonetune.cli")
_CONSOLE = Console()

_PRESET_COLUMNS = (
    "clarity",
    "volume_gain",
    "noise_reduction",
    "low_freq",
    "mid_freq",
    "high_freq",
    "bass_boost",
    "output_format",
    "sample_rate",
)


def _parse_assignments(pairs: Iterable[str]) -> dict[str, str]:
    updates: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise InvalidParamsError(f"expected key=value, got {pair!r}")
        updates[key.strip()] = value.strip()
    return updates


def _segment_from_args(args: argparse.Namespace, duration: float) -> Segment | None:
    if args.start is None and args.end is None:
        return None
    start = 0.0 if args.start is None else args.start
    end = duration if args.end is None else args.end
    return constrain_segment(Segment(start_time=start, end_time=end), duration)


def _resolve_params(args: argparse.Namespace) -> ProcessingParams:
    store = ParameterStore()
    if args.preset:
        store.apply_preset(args.preset)
    assignments = _parse_assignments(args.set or [])
    if assignments:
        store.update(assignments)
    return store.get()


def _print_lines(lines: Iterable[str]) -> None:
    for line in lines:
        _CONSOLE.print(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tonetune")
    sub = parser.add_subparsers(dest="command", required=True)

    render_cmd = sub.add_parser("render", help="Tune an audio file and write a WAV.")
    render_cmd.add_argument("input", type=Path)
    render_cmd.add_argument("output", type=Path)
    render_cmd.add_argument("--preset", choices=preset_names(), default=None)
    render_cmd.add_argument(
        "--set",
        action="append",
        metavar="KEY=VALUE",
        help="Override a parameter, e.g. --set volumeGain=70 (repeatable).",
    )
    render_cmd.add_argument("--start", type=float, default=None)
    render_cmd.add_argument("--end", type=float, default=None)
    render_cmd.add_argument("--profile", choices=["basic", "professional"], default=None)
    render_cmd.add_argument("--seed", type=int, default=None)
    render_cmd.add_argument(
        "--upload-dir",
        type=Path,
        default=None,
        help="Also store the result under its download name in this directory.",
    )

    sub.add_parser("presets", help="Show the preset table.")
    sub.add_parser("doctor", help="Check the output device and log paths.")

    info = sub.add_parser("info", help="Show the header of a WAV file.")
    info.add_argument("file", type=Path)

    play = sub.add_parser("play", help="Play a file, optionally bounded to a segment.")
    play.add_argument("file", type=Path)
    play.add_argument("--start", type=float, default=None)
    play.add_argument("--end", type=float, default=None)
    return parser


def _run_render(args: argparse.Namespace) -> int:
    overrides = {key: value for key in ("profile", "seed") if (value := getattr(args, key)) is not None}
    config = EngineConfig.from_env(**overrides)
    params = _resolve_params(args)
    source = load_file(args.input)
    segment = _segment_from_args(args, source.duration)

    with spinner(f"Rendering {args.input.name}") as status:
        output = render(source, params, segment, profile=config.profile, rng=config.make_rng())
        status.update(f"Encoding {args.output.name}")
        data = encode_wav(output)
    args.output.write_bytes(data)
    _CONSOLE.print(
        f"Wrote {args.output} ({output.duration:.2f}s, {output.channels} ch, {output.sample_rate} Hz)"
    )
    if params.output_format != "WAV":
        _CONSOLE.print(f"[yellow]{params.output_format} requested; the file is WAV.[/]")

    if args.upload_dir is not None:
        name = build_filename(segment, params)
        target = asyncio.run(submit(data, name, DirectoryUploader(args.upload_dir)))
        _CONSOLE.print(f"Uploaded as {target}")
    return 0


def _run_presets() -> int:
    table = Table(title="tonetune presets")
    table.add_column("preset")
    for column in _PRESET_COLUMNS:
        table.add_column(column, justify="right")
    for preset in Preset:
        values = preset_params(preset)
        if values is None:
            table.add_row(preset.value, *(["(current)"] * len(_PRESET_COLUMNS)))
            continue
        dumped = values.model_dump()
        table.add_row(preset.value, *(str(dumped[column]) for column in _PRESET_COLUMNS))
    _CONSOLE.print(table)
    return 0


def _run_doctor() -> int:
    capabilities = probe_capabilities()
    report = [
        f"Output device: {capabilities.device_name or 'none detected'}",
        f"Max sample rate: {format_sample_rate(capabilities.max_sample_rate)}",
        f"Log file: {get_log_path()}",
    ]
    for preset in Preset:
        values = preset_params(preset)
        if values is None:
            continue
        report.extend(f"- {preset.value}: {warning}" for warning in advise(values, capabilities))
    report.append("Hints:")
    report.append("- Install `tonetune[playback]` for device playback and probing.")
    report.append("- Set TONETUNE_LOG_DIR to move the log file.")
    _print_lines(report)
    return 0


def _run_info(args: argparse.Namespace) -> int:
    header = parse_wav_header(args.file.read_bytes())
    _print_lines(
        [
            f"File: {args.file}",
            f"Channels: {header.channels}",
            f"Sample rate: {header.sample_rate} Hz",
            f"Bits per sample: {header.bits_per_sample}",
            f"Byte rate: {header.byte_rate}",
            f"Block align: {header.block_align}",
            f"Data size: {header.data_size} bytes",
            f"Duration: {format_time_precise(header.duration)}",
        ]
    )
    return 0


async def _play(buffer: AudioBuffer, segment: Segment | None) -> None:
    scheduler: PlaybackScheduler | None = None

    def _ended() -> None:
        if scheduler is not None:
            scheduler.notify_ended()

    transport = SoundDeviceTransport(buffer, on_finished=_ended)
    scheduler = PlaybackScheduler(transport)
    if segment is None:
        await scheduler.play()
    else:
        await scheduler.play_segment(segment)
    await scheduler.wait_idle()


def _run_play(args: argparse.Namespace) -> int:
    buffer = load_file(args.file)
    segment = _segment_from_args(args, buffer.duration)
    _CONSOLE.print(f"Playing {args.file.name} ({format_time_precise(buffer.duration)})")
    asyncio.run(_play(buffer, segment))
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    try:
        parser = build_parser()
        args = parser.parse_args(argv)

        if args.command == "render":
            return _run_render(args)
        if args.command == "presets":
            return _run_presets()
        if args.command == "doctor":
            return _run_doctor()
        if args.command == "info":
            return _run_info(args)
        if args.command == "play":
            return _run_play(args)

        parser.print_help()
        return 1
    except Exception as exc:
        _LOGGER.warning("tonetune CLI failed: %s", exc, exc_info=debug_enabled())
        log_exception("tonetune CLI", exc)
        render_error("tonetune CLI", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
