"""Command-line option parsing shared by every command."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

INT_MIN = -(2**31)
INT_MAX = 2**31 - 1

Parser = Callable[[Optional[str]], Any]

_INT_PATTERN = re.compile(r"\s*[+-]?(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


class ParseStatus(enum.Enum):
    OK = "ok"
    PARSE_ERROR = "parse_error"
    SHOW_HELP = "show_help"


@dataclass
class ParseResult:
    """Outcome of parsing: where parsing stopped and what was collected."""

    status: ParseStatus
    arg_index: int
    value: Optional[str] = None
    message: Optional[str] = None
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is ParseStatus.OK


@dataclass
class Option:
    """One command-line option.

    ``parser`` receives the option's text (``None`` for boolean flags) and
    returns the value to store; it raises ``ValueError`` to reject it.
    Without a parser, a boolean flag stores True and any other option
    stores its text.
    """

    name: Optional[str] = None
    short_name: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    value_name: Optional[str] = None
    boolean: bool = False
    repeatable: bool = False
    hidden: bool = False
    parser: Optional[Parser] = None
    show_help: bool = False

    @property
    def key(self) -> str:
        return self.name if self.name is not None else (self.short_name or "")

    def convert(self, value: Optional[str]) -> Any:
        if self.parser is not None:
            return self.parser(value)
        if self.boolean:
            return True
        return value


class ArrayValue:
    """Parser that collects up to ``max_elements`` values of a repeated option."""

    def __init__(self, element_parser: Parser, max_elements: int) -> None:
        self.element_parser = element_parser
        self.max_elements = max_elements
        self.items: List[Any] = []

    def __call__(self, value: Optional[str]) -> List[Any]:
        if len(self.items) >= self.max_elements:
            raise ValueError("Array has too many elements")
        self.items.append(self.element_parser(value))
        return list(self.items)


def parse_int(value: Optional[str]) -> int:
    """Parse a C-style integer (decimal, 0x hex or 0 octal) within int range."""
    if value is None:
        raise ValueError("Invalid number")
    if value == "":
        return 0
    if not _INT_PATTERN.fullmatch(value):
        raise ValueError("Invalid number")
    text = value.strip()
    sign = -1 if text.startswith("-") else 1
    digits = text.lstrip("+-")
    if digits[:2] in ("0x", "0X"):
        number = int(digits[2:], 16)
    elif len(digits) > 1 and digits.startswith("0"):
        number = int(digits[1:], 8)
    else:
        number = int(digits, 10)
    number *= sign
    if number < INT_MIN or number > INT_MAX:
        raise ValueError("Value out of range")
    return number


def parse_flag(arg: str, flag_name: str) -> Optional[str]:
    """Return the rest of ``arg`` after the prefix ``flag_name``, or None."""
    if arg.startswith(flag_name):
        return arg[len(flag_name):]
    return None


def help_option() -> Option:
    return Option(
        name="help",
        short_name="h",
        summary="Display this message and exit",
        boolean=True,
        show_help=True,
    )


def hidden_help_option() -> Option:
    option = help_option()
    option.hidden = True
    return option


class ArgParser:
    """Parses ``argv`` (with ``argv[0]`` being the command name)."""

    def __init__(
        self,
        options: Sequence[Option],
        allow_positional: bool = False,
        usage: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> None:
        self.options = list(options)
        self.allow_positional = allow_positional
        self.usage = usage
        self.summary = summary

    def parse(self, argv: Sequence[str]) -> ParseResult:
        values: Dict[str, Any] = {}
        counts: Dict[int, int] = {id(opt): 0 for opt in self.options}
        index = 1
        while index < len(argv):
            arg = argv[index]
            if not arg.startswith("-"):
                return self._positional(argv, index, values)

            if arg.startswith("--"):
                if arg == "--":
                    return self._positional(argv, index + 1, values)
                body = arg[2:]
                option = next(
                    (o for o in self.options if o.name is not None and body.startswith(o.name)),
                    None,
                )
                is_long = True
            else:
                body = arg[1:]
                option = next(
                    (o for o in self.options if o.short_name and body[:1] == o.short_name),
                    None,
                )
                is_long = False

            if option is None:
                return self._error(argv, index, "Unknown option", values)

            result = self._try_parse(body, option, argv, index, is_long, counts, values)
            if result.status is not ParseStatus.OK:
                return result
            index = result.arg_index + 1

        return self._positional(argv, index, values)

    @staticmethod
    def _error(argv: Sequence[str], index: int, message: str, values: Dict[str, Any]) -> ParseResult:
        return ParseResult(ParseStatus.PARSE_ERROR, index, argv[index], message, values)

    def _positional(self, argv: Sequence[str], index: int, values: Dict[str, Any]) -> ParseResult:
        if index >= len(argv) or self.allow_positional:
            return ParseResult(ParseStatus.OK, index, values=values)
        return self._error(argv, index, "Positional arguments are not allowed", values)

    def _try_parse(
        self,
        body: str,
        option: Option,
        argv: Sequence[str],
        index: int,
        is_long: bool,
        counts: Dict[int, int],
        values: Dict[str, Any],
    ) -> ParseResult:
        if not option.repeatable and counts[id(option)] >= 1:
            return self._error(argv, index, "Option can only be specified once", values)

        name_len = len(option.name) if is_long and option.name else 1
        separator = body[name_len:name_len + 1]

        if option.boolean:
            if separator != "":
                return self._error(argv, index, "Invalid usage of a boolean flag", values)
            if option.show_help:
                return ParseResult(ParseStatus.SHOW_HELP, index, values=values)
            try:
                parsed = option.convert(None)
            except ValueError as exc:
                return self._error(argv, index, str(exc), values)
            counts[id(option)] += 1
            values[option.key] = parsed
            return ParseResult(ParseStatus.OK, index, values=values)

        if separator == "=":
            value = body[name_len + 1:]
        elif separator == "":
            if index + 1 < len(argv):
                index += 1
                value = argv[index]
            else:
                return self._error(argv, index, "Option must be followed by a value", values)
        elif is_long:
            return self._error(argv, index, "Unknown option", values)
        else:
            value = body[1:]

        try:
            parsed = option.convert(value)
        except ValueError as exc:
            return ParseResult(ParseStatus.PARSE_ERROR, index, value, str(exc), values)
        counts[id(option)] += 1
        values[option.key] = parsed
        return ParseResult(ParseStatus.OK, index, values=values)

    def format_help(self) -> str:
        parts: List[str] = []
        if self.usage is not None:
            parts.append(f"Usage: {self.usage}\n")
        if self.summary is not None:
            if self.usage is not None:
                parts.append("\n")
            parts.append(f"{self.summary}\n")

        printed_header = False
        for option in self.options:
            if option.hidden:
                continue
            if not printed_header:
                if self.summary is not None:
                    parts.append("\n")
                parts.append("Options:\n")
                printed_header = True

            parts.append("\n")
            if option.short_name:
                parts.append(f"-{option.short_name}")
            if option.name is not None:
                if option.short_name:
                    parts.append(", ")
                parts.append(f"--{option.name}")
            if not option.boolean:
                parts.append(f"=<{option.value_name or 'value'}>")
            if option.summary is not None:
                parts.append(f": {option.summary}")
            parts.append("\n")

            if option.description is not None:
                parts.append("\n")
                lines = option.description.split("\n")
                if lines[-1] == "":
                    lines.pop()
                parts.extend(f"  {line}\n" for line in lines)
        return "".join(parts)

    def format_result(self, result: ParseResult) -> str:
        if result.status is ParseStatus.PARSE_ERROR:
            return f"Error at argument #{result.arg_index}: {result.message} ({result.value})\n"
        if result.status is ParseStatus.SHOW_HELP:
            return self.format_help()
        return ""