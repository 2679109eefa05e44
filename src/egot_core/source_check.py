"""Well-formedness check for game-loop source before it is committed.

This is a lexical check, not a parser: it skips strings, template literals,
comments and regex literals, verifies that ``()``, ``[]`` and ``{}`` balance,
and looks for the lifecycle entry points the runtime calls.
"""

from __future__ import annotations

import re

from .errors import InvalidSource

DEFAULT_ENTRY_POINTS: tuple[str, ...] = ("setup", "draw")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}

# After these characters a "/" starts a regex literal rather than a division.
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS = frozenset(
    {"return", "typeof", "case", "do", "else", "in", "of", "new", "delete", "void", "throw", "yield"}
)

_IDENT = re.compile(r"[A-Za-z_$][\w$]*")


def _entry_point_pattern(name: str) -> re.Pattern[str]:
    n = re.escape(name)
    return re.compile(
        rf"\bfunction\s+{n}\s*\("
        rf"|(?<![\w$.]){n}\s*=\s*(?:async\s+)?(?:function\b|\([^()]*\)\s*=>)"
    )


def scan(source: str) -> tuple[list[str], str]:
    """Scan *source* and return ``(problems, code_only)``.

    ``code_only`` is *source* with every string, comment and regex body
    blanked to spaces (newlines kept), so offsets and line numbers still match.
    """
    problems: list[str] = []
    out = list(source)
    stack: list[tuple[str, int]] = []  # (opener or "${", line)
    i = 0
    n = len(source)
    line = 1
    last_sig = ""  # last significant code character
    last_word = ""

    def blank(start: int, end: int) -> None:
        for k in range(start, min(end, n)):
            if out[k] != "\n":
                out[k] = " "

    def scan_template(start: int) -> int:
        """Scan template text from *start*; stop after the closing backtick or at ``${``."""
        nonlocal line
        j = start
        while j < n:
            c = source[j]
            if c == "\\":
                j += 2
                continue
            if c == "\n":
                line += 1
            elif c == "`":
                blank(start, j)
                return j + 1
            elif c == "$" and j + 1 < n and source[j + 1] == "{":
                blank(start, j)
                stack.append(("${", line))
                return j + 2
            j += 1
        problems.append(f"line {line}: unterminated template literal")
        blank(start, n)
        return n

    while i < n:
        c = source[i]
        nxt = source[i + 1] if i + 1 < n else ""

        if c == "\n":
            line += 1
            i += 1
            continue
        if c.isspace():
            i += 1
            continue

        if c == "/" and nxt == "/":
            end = source.find("\n", i)
            end = n if end == -1 else end
            blank(i, end)
            i = end
            continue
        if c == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            if end == -1:
                problems.append(f"line {line}: unterminated block comment")
                blank(i, n)
                break
            line += source.count("\n", i, end)
            blank(i, end + 2)
            i = end + 2
            continue

        if c in ("'", '"'):
            j = i + 1
            while j < n and source[j] != c:
                if source[j] == "\\":
                    j += 1
                elif source[j] == "\n":
                    break
                j += 1
            if j >= n or source[j] != c:
                problems.append(f"line {line}: unterminated string literal")
                blank(i + 1, j)
                i = j
                continue
            blank(i + 1, j)
            i = j + 1
            last_sig, last_word = c, ""
            continue

        if c == "`":
            i = scan_template(i + 1)
            last_sig, last_word = "`", ""
            continue

        if c == "/" and (not last_sig or last_sig in _REGEX_PRECEDERS or last_word in _REGEX_KEYWORDS):
            j = i + 1
            in_class = False
            while j < n:
                ch = source[j]
                if ch == "\\":
                    j += 2
                    continue
                if ch == "\n":
                    break
                if ch == "[":
                    in_class = True
                elif ch == "]":
                    in_class = False
                elif ch == "/" and not in_class:
                    break
                j += 1
            if j >= n or source[j] != "/":
                problems.append(f"line {line}: unterminated regular expression")
                blank(i + 1, j)
                i = j
                continue
            blank(i + 1, j)
            i = j + 1
            while i < n and (source[i].isalnum() or source[i] == "_"):
                i += 1
            last_sig, last_word = "/", ""
            continue

        match = _IDENT.match(source, i)
        if match:
            last_word = match.group(0)
            last_sig = "a"
            i = match.end()
            continue

        if c in _OPENERS:
            stack.append((c, line))
        elif c in _CLOSERS:
            if c == "}" and stack and stack[-1][0] == "${":
                stack.pop()
                i = scan_template(i + 1)
                last_sig, last_word = "`", ""
                continue
            if not stack or stack[-1][0] != _CLOSERS[c]:
                problems.append(f"line {line}: unexpected '{c}'")
            else:
                stack.pop()
        last_sig, last_word = c, ""
        i += 1

    for opener, opened_at in reversed(stack):
        if opener == "${":
            problems.append(f"line {opened_at}: unterminated template expression")
        else:
            problems.append(f"line {opened_at}: unclosed '{opener}'")
    return problems, "".join(out)


def _top_level(code: str, offset: int) -> bool:
    depth = 0
    for ch in code[:offset]:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
    return depth == 0


class SourceChecker:
    """Validates replacement source for the game-loop runtime."""

    def __init__(self, entry_points: tuple[str, ...] = DEFAULT_ENTRY_POINTS) -> None:
        self._entry_points = entry_points
        self._patterns = {name: _entry_point_pattern(name) for name in entry_points}

    @property
    def entry_points(self) -> tuple[str, ...]:
        return self._entry_points

    def problems(self, source: str) -> list[str]:
        if not source.strip():
            return ["source is empty"]
        found, code = scan(source)
        if found:
            # Entry-point search is meaningless on unbalanced code.
            return found
        for name, pattern in self._patterns.items():
            if not any(_top_level(code, m.start()) for m in pattern.finditer(code)):
                found.append(f"missing required function '{name}()'")
        return found

    def ensure_valid(self, source: str) -> None:
        problems = self.problems(source)
        if problems:
            raise InvalidSource(problems)
