"""Splitting free-form argument strings and rendering argument vectors for display."""

import re
from typing import Iterable, List, Optional

from ffcraft.exceptions import CommandLineParseError

# Tokens made only of these characters are printed without quotes
SAFE_PREVIEW_ARG_RE = re.compile(r"[A-Za-z0-9_./:=+,-]+")


def split_command_line(command_line: Optional[str]) -> List[str]:
    """
    Split a command-line string into argument tokens.

    Backslash makes the next character literal everywhere except inside single
    quotes. Quote characters toggle quoting and are never part of a token.

    Args:
        command_line: The text to split (None is treated as empty)

    Returns:
        The list of tokens, without empty entries

    Raises:
        CommandLineParseError: On a trailing backslash or an unclosed quote
    """
    text = "" if command_line is None else str(command_line)
    tokens = []

    current = []
    in_single_quote = False
    in_double_quote = False
    escape_next = False

    for char in text:
        if escape_next:
            current.append(char)
            escape_next = False
            continue

        if char == "\\" and not in_single_quote:
            escape_next = True
            continue

        if char == '"' and not in_single_quote:
            in_double_quote = not in_double_quote
            continue

        if char == "'" and not in_double_quote:
            in_single_quote = not in_single_quote
            continue

        if char.isspace() and not in_single_quote and not in_double_quote:
            if current:
                tokens.append("".join(current))
                current = []
            continue

        current.append(char)

    if escape_next:
        raise CommandLineParseError("Invalid command line: trailing escape")

    if in_single_quote or in_double_quote:
        raise CommandLineParseError("Invalid command line: unclosed quote")

    if current:
        tokens.append("".join(current))
    return tokens


def quote_command_arg(value) -> str:
    """Quote a single argument for the preview string if it needs it."""
    text = "" if value is None else str(value)
    if not text:
        return '""'

    if SAFE_PREVIEW_ARG_RE.fullmatch(text):
        return text

    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_command_preview(binary_path: Optional[str], args: Optional[Iterable[str]]) -> str:
    """
    Render an executable and its arguments as one human-readable line.

    The result is meant for logs and previews; it is not parsed back.

    Args:
        binary_path: Executable path, "ffmpeg" when blank
        args: The argument vector; None or a bare string adds nothing

    Returns:
        The space-joined, quoted command line
    """
    executable = str(binary_path).strip() if binary_path is not None else ""
    command = [executable or "ffmpeg"]
    if args is not None and not isinstance(args, str):
        command.extend(args)
    return " ".join(quote_command_arg(arg) for arg in command)
