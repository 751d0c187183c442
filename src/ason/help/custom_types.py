"""Monkey-patch Typer help and error handling for machine callers.

With ``LLM=true`` in the environment, ``--help`` prints the help structure
encoded as ASON instead of Rich panels (``--human`` forces the normal
output). Usage errors always become JSON error envelopes.
"""

from __future__ import annotations

import os
import sys

import click


def _human_flag_set(ctx: click.Context | None) -> bool:
    """Check if --human was passed, walking up the context chain."""
    while ctx is not None:
        if ctx.params.get("human"):
            return True
        ctx = ctx.parent
    return False


def should_use_ason(ctx: click.Context | None = None) -> bool:
    """Check if ASON help output should be used."""
    if os.environ.get("LLM", "").lower() != "true":
        return False
    # sys.argv for real runs, the Click context for CliRunner
    if "--human" in sys.argv:
        return False
    if ctx is not None and _human_flag_set(ctx):
        return False
    return True


def patch_typer_help() -> None:
    """Patch Typer Group and Command format_help to emit ASON."""
    import typer.core

    _orig_group_format_help = typer.core.TyperGroup.format_help
    _orig_command_format_help = typer.core.TyperCommand.format_help

    def _ason_group_format_help(self: click.Group, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        if not should_use_ason(ctx):
            _orig_group_format_help(self, ctx, formatter)
            return

        from ason.engine.codec import encode
        from ason.help.extractor import extract_app_help

        formatter.write(encode(extract_app_help(self, ctx)))
        formatter.write("\n")

    def _ason_command_format_help(self: click.Command, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        if not should_use_ason(ctx):
            _orig_command_format_help(self, ctx, formatter)
            return

        from ason.engine.codec import encode
        from ason.help.extractor import extract_command_help

        formatter.write(encode(extract_command_help(self, ctx)))
        formatter.write("\n")

    typer.core.TyperGroup.format_help = _ason_group_format_help
    typer.core.TyperCommand.format_help = _ason_command_format_help


def usage_error_type() -> type[Exception]:
    """The UsageError class typer raises.

    Recent typer releases bundle their own click, so the class is found through
    the exceptions typer re-exports rather than imported from click.
    """
    import typer

    for cls in typer.BadParameter.__mro__:
        if cls.__name__ == "UsageError":
            return cls
    return click.exceptions.UsageError


def patch_typer_errors() -> None:
    """Patch TyperGroup.invoke to emit JSON envelopes for CLI usage errors."""
    import typer.core

    _orig_invoke = typer.core.TyperGroup.invoke
    _usage_error = usage_error_type()

    def _json_invoke(self, ctx):
        try:
            return _orig_invoke(self, ctx)
        except _usage_error as e:
            from ason.engine.dispatcher import error_envelope, exit_code_for, print_response

            command = ctx.invoked_subcommand or "unknown"
            env = error_envelope(command, "ERR_USAGE", str(e.format_message()))
            print_response(env)
            raise SystemExit(exit_code_for(env)) from e

    typer.core.TyperGroup.invoke = _json_invoke
