"""Extract structured help data from Click/Typer command objects."""

from __future__ import annotations

import re
from typing import Any

import click

# Options to omit from machine-readable help
_HIDDEN_OPTIONS = {"--help", "--install-completion", "--show-completion"}


def extract_app_help(group: click.Group, ctx: click.Context) -> dict[str, Any]:
    """Extract top-level app help data."""
    from ason import __version__

    commands: list[dict[str, str]] = []
    for name, cmd in sorted(group.commands.items()):
        if cmd.hidden:
            continue
        commands.append({"name": name, "description": _strip_markdown(cmd.get_short_help_str(limit=300))})

    data: dict[str, Any] = {
        "name": ctx.info_name or "ason",
        "version": __version__,
        "description": _strip_markdown(_get_short_description(group)),
    }
    options = _extract_options(group, ctx)
    if options:
        data["options"] = options
    if commands:
        data["commands"] = commands
    return data


def extract_command_help(cmd: click.Command, ctx: click.Context) -> dict[str, Any]:
    """Extract command-level help data."""
    data: dict[str, Any] = {
        "command": ctx.command_path,
        "description": _strip_markdown(_get_short_description(cmd)),
    }

    options = _extract_options(cmd, ctx)
    if options:
        data["options"] = options

    examples = _parse_examples(cmd.help or "") + _parse_examples(cmd.epilog or "")
    if examples:
        data["examples"] = examples
    return data


def is_option(param: click.Parameter) -> bool:
    """True for options, whether the parameter class comes from click or from typer's bundled copy."""
    return getattr(param, "param_type_name", None) == "option"


def _extract_options(cmd: click.Command, ctx: click.Context) -> list[dict[str, Any]]:
    """Option metadata as uniform records, so they render as one table."""
    options: list[dict[str, Any]] = []
    for param in cmd.get_params(ctx):
        if not is_option(param):
            continue
        if any(o in _HIDDEN_OPTIONS for o in param.opts):
            continue
        flag = "/".join(param.opts + param.secondary_opts)
        default = param.default
        if param.is_flag:
            default = bool(default)
        elif default is not None and not isinstance(default, (int, float, str)):
            default = str(default)
        options.append({
            "flag": flag,
            "type": "flag" if param.is_flag else _click_type_name(param.type),
            "required": param.required,
            "default": default,
            "help": _strip_markdown(param.help or ""),
        })
    return options


def _click_type_name(t: click.ParamType) -> str:
    name = t.name.lower()
    mapping = {
        "string": "text",
        "integer": "int",
        "float": "float",
        "boolean": "flag",
        "path": "path",
        "choice": "choice",
    }
    return mapping.get(name, name)


def _get_short_description(cmd: click.Command) -> str:
    """First line of a command's help text."""
    text = cmd.help or ""
    if not text:
        return ""
    return text.strip().split("\n")[0].strip()


def _strip_markdown(text: str) -> str:
    """Remove Rich/Markdown formatting from text."""
    text = re.sub(r"`([^`]+)`", r"\1", text)
    text = re.sub(r"\*\*([^*]+)\*\*", r"\1", text)
    text = re.sub(r"\*([^*]+)\*", r"\1", text)
    return text.strip()


def _parse_examples(text: str) -> list[str]:
    """Extract example command lines from help text."""
    examples: list[str] = []
    for line in text.split("\n"):
        cleaned = line.strip()
        if cleaned.startswith("Example:"):
            cleaned = cleaned[len("Example:"):].strip()
        cleaned = re.sub(r"^`([^`]+)`.*$", r"\1", cleaned).strip()
        if cleaned.startswith("ason "):
            examples.append(cleaned)
    return examples
