"""Typer CLI application: encode, decode, convert, stats, version."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Optional

import portalocker
import typer
from pydantic import ValidationError

from ason.help.custom_types import patch_typer_errors, patch_typer_help

patch_typer_help()
patch_typer_errors()

import ason
from ason.contracts.common import AsonError, DecodeError, EncodeError, Target
from ason.contracts.options import CodecOptions, resolve_options
from ason.contracts.responses import DecodeResult, EncodeResult, TableCounts
from ason.core.analysis import analyze
from ason.core.decoder import Parser
from ason.core.encoder import render
from ason.core.values import normalize
from ason.engine.context import DecodeContext
from ason.engine.dispatcher import (
    codec_error_envelope,
    error_envelope,
    exit_code_for,
    print_response,
    success_envelope,
)
from ason.io.config import ConfigError, find_config, load_config
from ason.io.fileops import STDIO, detect_mode, read_input, write_output
from ason.observe.events import EventEmitter, Timer
from ason.report.tokens import compare_formats

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

_MAIN_HELP = """\
Convert JSON to ASON (Aliased Serialization Object Notation) and back.

ASON is a lossless, indentation-based text form of JSON data that hoists
repeated table schemas, small repeated objects and recurring strings, so the
same data costs fewer tokens in an LLM prompt.

**Examples:**

`ason encode -f data.json`  — envelope with the ASON text and table counts

`ason encode -f data.json -o data.ason --stats`  — write the file, report savings

`ason decode -f data.ason --raw`  — print the JSON document only

`ason convert -f input.txt`  — direction detected from extension or content

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "target": {...}, "result": {...}, "errors": [...], "warnings": [...], "metrics": {"duration_ms": N}}`
unless `--raw` asks for the converted document alone.

**Configuration:** `ason.yaml` in the working directory (or `--config FILE`)
supplies defaults for `indent`, `delimiter`, `enable_structural_dedup`,
`enable_string_dictionary` and `strict`. Command-line flags win.

**Exit codes:** 0=success, 10=validation, 30=decode, 50=io, 90=internal
"""

_ENCODE_EPILOG = """\
**Examples:**

`ason encode -f orders.json --delimiter tab`

`ason encode -f orders.json --no-references --no-dictionary`  — plain layout, no $def header

`cat orders.json | ason encode --raw > orders.ason`
"""

_DECODE_EPILOG = """\
**Examples:**

`ason decode -f orders.ason -o orders.json`

`ason decode -f orders.ason --strict`  — fail on unknown $ref, &obj or # tags

Unknown references degrade to `[]` (tables) or their raw text unless `--strict` is given.
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(ason.__version__)
        raise typer.Exit()


app = typer.Typer(
    name="ason",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
    human: Annotated[
        bool, typer.Option("--human", help="Force human-readable help (overrides LLM=true).", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
FileOpt = Annotated[Optional[str], typer.Option("--file", "-f", help="Input file ('-' or omitted reads stdin)")]
OutOpt = Annotated[Optional[str], typer.Option("--out", "-o", help="Write the converted document to this file")]
IndentOpt = Annotated[Optional[int], typer.Option("--indent", help="Spaces per nesting level (>= 1, default 1)")]
DelimiterOpt = Annotated[
    Optional[str], typer.Option("--delimiter", "-d", help="Field delimiter: comma, tab, pipe, semicolon or one character")
]
NoRefsOpt = Annotated[bool, typer.Option("--no-references", help="Disable structure refs and object aliases")]
NoDictOpt = Annotated[bool, typer.Option("--no-dictionary", help="Disable the recurring-string dictionary")]
StrictOpt = Annotated[bool, typer.Option("--strict", help="Fail on unresolved references and wrong row counts")]
StatsOpt = Annotated[bool, typer.Option("--stats", help="Include token and size estimates")]
RawOpt = Annotated[bool, typer.Option("--raw", help="Print only the converted document")]
EventsOpt = Annotated[bool, typer.Option("--events", help="Emit NDJSON lifecycle events on stderr")]
ConfigOpt = Annotated[Optional[str], typer.Option("--config", help="YAML file with codec defaults (default: ./ason.yaml)")]
LockTimeoutOpt = Annotated[float, typer.Option("--lock-timeout", help="Seconds to wait for the output lock")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _emit_raw(text: str) -> None:
    typer.echo(text)
    raise typer.Exit(0)


def _fail(
    command: str,
    code: str,
    message: str,
    *,
    target: Target,
    events: EventEmitter,
    details: dict | None = None,
) -> None:
    events.emit("command.failed", {"command": command, "code": code})
    _emit(error_envelope(command, code, message, target=target, details=details))


def _fail_codec(command: str, exc: AsonError, *, target: Target, events: EventEmitter) -> None:
    envelope = codec_error_envelope(command, exc, target=target)
    events.emit("command.failed", {"command": command, "code": envelope.errors[0].code})
    _emit(envelope)


def _load_options(command: str, config: str | None, target: Target, events: EventEmitter, **overrides: Any) -> CodecOptions:
    """Config file defaults, then command-line overrides."""
    try:
        path = Path(config) if config else find_config(Path.cwd())
        base = load_config(path) if path is not None else {}
        return resolve_options(CodecOptions(**base), **overrides)
    except FileNotFoundError:
        _fail(command, "ERR_CONFIG_NOT_FOUND", f"Config file not found: {config}", target=target, events=events)
    except ConfigError as e:
        _fail(command, "ERR_CONFIG_INVALID", str(e), target=target, events=events)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        _fail(
            command,
            "ERR_INVALID_OPTION",
            f"Invalid option {field}: {first.get('msg')}",
            target=target,
            events=events,
            details={"field": field},
        )


def _read_or_fail(command: str, file: str | None, target: Target, events: EventEmitter) -> str:
    try:
        text = read_input(file)
    except FileNotFoundError:
        _fail(command, "ERR_FILE_NOT_FOUND", f"File not found: {file}", target=target, events=events)
    except (OSError, UnicodeDecodeError) as e:
        _fail(command, "ERR_IO", f"Cannot read {file or STDIO}: {e}", target=target, events=events)
    if not text.strip():
        _fail(command, "ERR_INPUT_EMPTY", "Input is empty", target=target, events=events)
    return text


def _write_or_fail(command: str, out: str, text: str, lock_timeout: float, target: Target, events: EventEmitter) -> None:
    try:
        write_output(out, text, timeout=lock_timeout)
    except portalocker.LockException:
        _fail(command, "ERR_LOCK_HELD", f"Another process is writing {out}", target=target, events=events)
    except OSError as e:
        _fail(command, "ERR_IO", f"Cannot write {out}: {e}", target=target, events=events)


def _encode_document(
    command: str, text: str, opts: CodecOptions, target: Target, events: EventEmitter
) -> tuple[Any, str, TableCounts]:
    """Parse JSON input and encode it; returns (value, ason_text, counts)."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        _fail(
            command,
            "ERR_JSON_INVALID",
            f"Input is not valid JSON: {e.msg}",
            target=target,
            events=events,
            details={"line": e.lineno, "column": e.colno},
        )
    events.emit("encode.start", {"indent": opts.indent, "delimiter": opts.delimiter})
    try:
        value = normalize(value)
        tables = analyze(value, opts)
        counts = TableCounts(
            structures=len(tables.structures),
            aliases=len(tables.aliases),
            dictionary=len(tables.dictionary),
        )
        events.emit("analysis.complete", counts.model_dump())
        encoded = render(value, tables, opts)
    except EncodeError as e:
        _fail_codec(command, e, target=target, events=events)
    events.emit("encode.complete", {"chars": len(encoded), "lines": encoded.count("\n") + 1})
    return value, encoded, counts


def _decode_document(
    command: str, text: str, opts: CodecOptions, target: Target, events: EventEmitter
) -> Any:
    events.emit("decode.start", {"strict": opts.strict, "lines": text.count("\n") + 1})
    try:
        value = Parser(text, DecodeContext(opts)).parse()
    except DecodeError as e:
        _fail_codec(command, e, target=target, events=events)
    events.emit("decode.complete", {"kind": type(value).__name__})
    return value


def _dump_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _run_encode(
    command: str,
    text: str,
    out: str | None,
    opts: CodecOptions,
    *,
    stats: bool,
    raw: bool,
    lock_timeout: float,
    target: Target,
    events: EventEmitter,
) -> None:
    with Timer() as t:
        value, encoded, counts = _encode_document(command, text, opts, target, events)
        if out:
            _write_or_fail(command, out, encoded, lock_timeout, target, events)
    if raw and not out:
        _emit_raw(encoded)
    result = EncodeResult(
        text=None if out else encoded,
        output=out,
        tables=counts,
        stats=compare_formats(value, encoded) if stats else None,
    )
    _emit(success_envelope(command, result.model_dump(), target=target, duration_ms=t.elapsed_ms))


def _run_decode(
    command: str,
    text: str,
    out: str | None,
    opts: CodecOptions,
    *,
    stats: bool,
    raw: bool,
    lock_timeout: float,
    target: Target,
    events: EventEmitter,
) -> None:
    with Timer() as t:
        value = _decode_document(command, text, opts, target, events)
        if out:
            _write_or_fail(command, out, _dump_json(value), lock_timeout, target, events)
    if raw and not out:
        _emit_raw(_dump_json(value))
    result = DecodeResult(
        value=None if out else value,
        output=out,
        stats=compare_formats(value, text) if stats else None,
    )
    _emit(success_envelope(command, result.model_dump(), target=target, duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# ason version
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the ason CLI version.

    Example: `ason version`
    """
    env = success_envelope("version", {"version": ason.__version__})
    _emit(env)


# ---------------------------------------------------------------------------
# ason encode
# ---------------------------------------------------------------------------
@app.command(epilog=_ENCODE_EPILOG)
def encode(
    file: FileOpt = None,
    out: OutOpt = None,
    indent: IndentOpt = None,
    delimiter: DelimiterOpt = None,
    no_references: NoRefsOpt = False,
    no_dictionary: NoDictOpt = False,
    stats: StatsOpt = False,
    raw: RawOpt = False,
    events: EventsOpt = False,
    config: ConfigOpt = None,
    lock_timeout: LockTimeoutOpt = 0,
):
    """Encode a JSON document as ASON.

    Analyzes the document for repeated schemas, small repeated objects and
    recurring strings, then renders the indented ASON text.

    Example: `ason encode -f data.json -o data.ason`
    """
    emitter = EventEmitter(enabled=events)
    target = Target(input=file or STDIO, output=out, mode="encode")
    opts = _load_options(
        "encode",
        config,
        target,
        emitter,
        indent=indent,
        delimiter=delimiter,
        enable_structural_dedup=False if no_references else None,
        enable_string_dictionary=False if no_dictionary else None,
    )
    text = _read_or_fail("encode", file, target, emitter)
    _run_encode("encode", text, out, opts, stats=stats, raw=raw, lock_timeout=lock_timeout, target=target, events=emitter)


# ---------------------------------------------------------------------------
# ason decode
# ---------------------------------------------------------------------------
@app.command(epilog=_DECODE_EPILOG)
def decode(
    file: FileOpt = None,
    out: OutOpt = None,
    delimiter: DelimiterOpt = None,
    strict: StrictOpt = False,
    stats: StatsOpt = False,
    raw: RawOpt = False,
    events: EventsOpt = False,
    config: ConfigOpt = None,
    lock_timeout: LockTimeoutOpt = 0,
):
    """Decode ASON text back into JSON.

    Reads the optional `$def` header, then rebuilds the document, expanding
    structure refs, object aliases and dictionary tags.

    Example: `ason decode -f data.ason -o data.json`
    """
    emitter = EventEmitter(enabled=events)
    target = Target(input=file or STDIO, output=out, mode="decode")
    opts = _load_options("decode", config, target, emitter, delimiter=delimiter, strict=True if strict else None)
    text = _read_or_fail("decode", file, target, emitter)
    _run_decode("decode", text, out, opts, stats=stats, raw=raw, lock_timeout=lock_timeout, target=target, events=emitter)


# ---------------------------------------------------------------------------
# ason convert
# ---------------------------------------------------------------------------
@app.command()
def convert(
    file: FileOpt = None,
    out: OutOpt = None,
    to_ason: Annotated[bool, typer.Option("--encode", help="Force JSON -> ASON")] = False,
    to_json: Annotated[bool, typer.Option("--decode", help="Force ASON -> JSON")] = False,
    indent: IndentOpt = None,
    delimiter: DelimiterOpt = None,
    no_references: NoRefsOpt = False,
    no_dictionary: NoDictOpt = False,
    strict: StrictOpt = False,
    stats: StatsOpt = False,
    raw: RawOpt = False,
    events: EventsOpt = False,
    config: ConfigOpt = None,
    lock_timeout: LockTimeoutOpt = 0,
):
    """Convert in whichever direction the input calls for.

    `--encode` / `--decode` decide when given; otherwise a `.json` or
    `.ason` extension decides, and finally input that parses as JSON is
    encoded while anything else is decoded.

    Example: `ason convert -f data.json`

    Example: `ason convert -f notes.txt --decode --raw`
    """
    emitter = EventEmitter(enabled=events)
    target = Target(input=file or STDIO, output=out)
    if to_ason and to_json:
        _fail("convert", "ERR_INVALID_ARGUMENT", "--encode and --decode are mutually exclusive", target=target, events=emitter)
    opts = _load_options(
        "convert",
        config,
        target,
        emitter,
        indent=indent,
        delimiter=delimiter,
        enable_structural_dedup=False if no_references else None,
        enable_string_dictionary=False if no_dictionary else None,
        strict=True if strict else None,
    )
    text = _read_or_fail("convert", file, target, emitter)
    mode = "encode" if to_ason else "decode" if to_json else detect_mode(file, text)
    target.mode = mode
    runner = _run_encode if mode == "encode" else _run_decode
    runner("convert", text, out, opts, stats=stats, raw=raw, lock_timeout=lock_timeout, target=target, events=emitter)


# ---------------------------------------------------------------------------
# ason stats
# ---------------------------------------------------------------------------
@app.command()
def stats(
    file: FileOpt = None,
    indent: IndentOpt = None,
    delimiter: DelimiterOpt = None,
    no_references: NoRefsOpt = False,
    no_dictionary: NoDictOpt = False,
    events: EventsOpt = False,
    config: ConfigOpt = None,
):
    """Estimate token and size savings without writing anything.

    JSON input is encoded first; ASON input is decoded and compared with
    the compact JSON form of the decoded value.

    Example: `ason stats -f data.json`
    """
    emitter = EventEmitter(enabled=events)
    target = Target(input=file or STDIO)
    opts = _load_options(
        "stats",
        config,
        target,
        emitter,
        indent=indent,
        delimiter=delimiter,
        enable_structural_dedup=False if no_references else None,
        enable_string_dictionary=False if no_dictionary else None,
    )
    with Timer() as t:
        text = _read_or_fail("stats", file, target, emitter)
        mode = detect_mode(file, text)
        target.mode = mode
        counts = None
        if mode == "encode":
            value, encoded, counts = _encode_document("stats", text, opts, target, emitter)
        else:
            value = _decode_document("stats", text, opts, target, emitter)
            encoded = text
        comparison = compare_formats(value, encoded)
    result: dict[str, Any] = {"mode": mode, **comparison.model_dump()}
    if counts is not None:
        result["tables"] = counts.model_dump()
    _emit(success_envelope("stats", result, target=target, duration_ms=t.elapsed_ms))
