"""
A restricted parser for JavaScript object literals.

Game settings are embedded in scripts as `window._CCSettings = {...};`. Instead
of evaluating script text, the literal is parsed as a JSON superset that also
allows unquoted keys, single-quoted strings, comments, trailing commas and the
`undefined` keyword. Anything else (function calls, expressions, variables) is
rejected with a ValueError.
"""

import json
import logging
import re
from typing import Any

log = logging.getLogger(__name__)

_SETTINGS_ASSIGNMENT_REGEX = re.compile(r"_CCSettings\s*=\s*(?=\{)")
_IDENTIFIER_REGEX = re.compile(r"[A-Za-z_$][\w$]*")
_NUMBER_REGEX = re.compile(
    r"-?(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
)
_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None}
_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class _LiteralParser:
    """Recursive-descent parser over a single object/array literal."""

    def __init__(self, text: str, pos: int = 0):
        self.text = text
        self.pos = pos

    def error(self, message: str) -> ValueError:
        return ValueError(f"{message} at offset {self.pos}")

    def skip_whitespace(self) -> None:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("Unterminated comment")
                self.pos = end + 2
            else:
                break

    def peek(self) -> str:
        self.skip_whitespace()
        if self.pos >= len(self.text):
            raise self.error("Unexpected end of input")
        return self.text[self.pos]

    def parse_value(self) -> Any:
        char = self.peek()
        if char == "{":
            return self.parse_object()
        if char == "[":
            return self.parse_array()
        if char in "\"'":
            return self.parse_string()
        number = _NUMBER_REGEX.match(self.text, self.pos)
        if number:
            self.pos = number.end()
            token = number.group()
            if "x" in token.lower():
                return int(token, 16)
            if re.fullmatch(r"-?\d+", token):
                return int(token)
            return float(token)
        identifier = _IDENTIFIER_REGEX.match(self.text, self.pos)
        if identifier and identifier.group() in _KEYWORDS:
            self.pos = identifier.end()
            return _KEYWORDS[identifier.group()]
        raise self.error(f"Unsupported token {char!r}")

    def parse_string(self) -> str:
        quote = self.text[self.pos]
        self.pos += 1
        chars = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == quote:
                self.pos += 1
                return "".join(chars)
            if char == "\\":
                self.pos += 1
                if self.pos >= len(self.text):
                    break
                escaped = self.text[self.pos]
                if escaped == "u":
                    code = self.text[self.pos + 1 : self.pos + 5]
                    try:
                        chars.append(chr(int(code, 16)))
                    except ValueError:
                        raise self.error("Invalid unicode escape") from None
                    self.pos += 5
                    continue
                chars.append(_ESCAPES.get(escaped, escaped))
                self.pos += 1
                continue
            chars.append(char)
            self.pos += 1
        raise self.error("Unterminated string")

    def parse_key(self) -> str:
        char = self.peek()
        if char in "\"'":
            return self.parse_string()
        identifier = _IDENTIFIER_REGEX.match(self.text, self.pos)
        if identifier:
            self.pos = identifier.end()
            return identifier.group()
        number = _NUMBER_REGEX.match(self.text, self.pos)
        if number:
            self.pos = number.end()
            return number.group()
        raise self.error(f"Invalid object key {char!r}")

    def parse_object(self) -> dict[str, Any]:
        self.pos += 1  # '{'
        result: dict[str, Any] = {}
        while True:
            if self.peek() == "}":
                self.pos += 1
                return result
            key = self.parse_key()
            if self.peek() != ":":
                raise self.error("Expected ':'")
            self.pos += 1
            result[key] = self.parse_value()
            char = self.peek()
            if char == ",":
                self.pos += 1
            elif char != "}":
                raise self.error("Expected ',' or '}'")

    def parse_array(self) -> list[Any]:
        self.pos += 1  # '['
        result: list[Any] = []
        while True:
            if self.peek() == "]":
                self.pos += 1
                return result
            result.append(self.parse_value())
            char = self.peek()
            if char == ",":
                self.pos += 1
            elif char != "]":
                raise self.error("Expected ',' or ']'")


def parse_object_literal(text: str, start: int = 0) -> tuple[Any, int]:
    """
    Parses the literal starting at `start`.

    Returns:
        The parsed value and the offset just past the literal.
    """
    parser = _LiteralParser(text, start)
    value = parser.parse_value()
    return value, parser.pos


def extract_settings(script_text: str) -> dict[str, Any] | None:
    """
    Extracts the game settings object from script text.

    Accepts either a `_CCSettings = {...}` assignment or a plain JSON document
    that has a `jsList` key. Returns None when neither is present.
    """
    match = _SETTINGS_ASSIGNMENT_REGEX.search(script_text)
    if match:
        try:
            settings, _ = parse_object_literal(script_text, match.end())
        except ValueError as e:
            log.error(f"Failed to parse settings: {e}")
            return None
        if isinstance(settings, dict):
            return settings
        return None

    try:
        settings = json.loads(script_text)
    except ValueError:
        return None
    if isinstance(settings, dict) and settings.get("jsList"):
        return settings
    return None
