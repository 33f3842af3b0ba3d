"""
Minimal template engine for markdown reports.

Syntax
------
``{{ path }}``
    Interpolation.  ``path`` is a dotted key path (``demographics.sex.grade``);
    numeric segments index into lists (``items.0.name``).  Missing values,
    ``None``, and paths that run through a scalar render as ``""``.

``{{ path | filter }}``
    ``number('0.00')`` — fixed-point; the digits after ``.`` set the
    precision, exact halves round away from zero, and a leading ``+``
    forces a sign on non-negative numbers.
    ``date(...)``      — ISO date/datetime string to ``"October 16, 2026"``.
    ``title``          — first character upper-cased, the rest lower-cased.
    Filters render ``""`` for values of the wrong type.  Filters chain left
    to right.

``{% for x in path %} ... {% endfor %}``
    Repeats the body for each element of a list/tuple; anything else renders
    nothing.  The body sees the outer context plus ``x`` and ``loop``
    (``index``, ``index0``, ``first``, ``last``, ``length``).

``{% if cond %} ... {% else %} ... {% endif %}``
    ``cond`` is either a dotted path (Python truthiness, so empty lists and
    mappings are false) or a membership test ``path in ['A', 'B']``
    against string literals.  Only the chosen branch is evaluated.

A ``-`` just inside a delimiter (``{%-``, ``-%}``, ``{{-``, ``-}}``) strips
whitespace, including newlines, on that side of the tag.

Failure model
-------------
Rendering never raises.  Syntax that does not match the grammar is left in
the output: unknown ``{% ... %}`` tags, blocks with no closing tag, stray
``else``/``end*`` tags, an empty ``{{}}``, and an unterminated ``{{`` or
``{%`` are emitted as literal text.  An ``{{ ... }}`` expression that is
not a path followed by known filters is looked up as a plain path, which
(having no such key) renders ``""``.

Implementation
--------------
``tokenize()`` splits the source into text / output / tag tokens,
``parse()`` builds a node tree (``Text``, ``Output``, ``ForLoop``,
``Conditional``) by recursive descent, and each node renders itself against
a context mapping.  Templates are re-parsed on every ``render()`` call.
"""

from __future__ import annotations

import json
import math
import re
from collections import ChainMap
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from diversity_scorecard.utils.time_utils import format_long_date, parse_iso_date

# ── Tokens ────────────────────────────────────────────────────────────────────

_TEXT = "text"
_OUTPUT = "output"
_TAG = "tag"

_OPENERS = {"{{": ("}}", _OUTPUT), "{%": ("%}", _TAG)}


@dataclass
class Token:
    """One lexical unit.

    ``body`` is the text between the delimiters (whitespace-control dashes
    removed, surrounding whitespace stripped) for output/tag tokens, and the
    literal text for text tokens.  ``raw`` is always the exact source text.
    """

    kind: str
    body: str
    raw: str


def tokenize(source: str) -> list[Token]:
    """Split ``source`` into text, output, and tag tokens.

    Whitespace control is applied here: a ``-`` after an opener trims the
    preceding text token's trailing whitespace, a ``-`` before a closer trims
    the following text's leading whitespace.
    """
    tokens: list[Token] = []
    pos = 0
    strip_next = False
    length = len(source)

    while pos < length:
        start = _find_opener(source, pos)
        if start < 0:
            _append_text(tokens, source[pos:], strip_next)
            break

        opener = source[start:start + 2]
        closer, kind = _OPENERS[opener]
        end = source.find(closer, start + 2)
        if end < 0:
            # Unterminated delimiter: the rest of the template is literal.
            _append_text(tokens, source[pos:], strip_next)
            break

        _append_text(tokens, source[pos:start], strip_next)
        strip_next = False

        inner = source[start + 2:end]
        raw = source[start:end + 2]
        if inner.startswith("-"):
            inner = inner[1:]
            if tokens and tokens[-1].kind == _TEXT:
                tokens[-1].body = tokens[-1].body.rstrip()
                tokens[-1].raw = tokens[-1].body
        if inner.endswith("-"):
            inner = inner[:-1]
            strip_next = True

        tokens.append(Token(kind=kind, body=inner.strip(), raw=raw))
        pos = end + 2

    return tokens


def _find_opener(source: str, pos: int) -> int:
    a = source.find("{{", pos)
    b = source.find("{%", pos)
    if a < 0:
        return b
    if b < 0:
        return a
    return min(a, b)


def _append_text(tokens: list[Token], text: str, strip_leading: bool) -> None:
    if strip_leading:
        text = text.lstrip()
    if text:
        tokens.append(Token(kind=_TEXT, body=text, raw=text))


# ── Value helpers ─────────────────────────────────────────────────────────────


def resolve_path(context: Any, segments: Sequence[str]) -> Any:
    """Walk ``segments`` through nested mappings / sequences.

    Returns ``None`` when a key is missing, an index is out of range, or the
    walk reaches ``None`` or a scalar before the last segment.  Never raises.
    """
    value = context
    for segment in segments:
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(segment)
        elif isinstance(value, (list, tuple)):
            try:
                value = value[int(segment)]
            except (ValueError, IndexError):
                return None
        else:
            return None
    return value


def to_display(value: Any) -> str:
    """String form of a context value for interpolation."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join(to_display(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(dict(value), default=str)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


# ── Filters ───────────────────────────────────────────────────────────────────


def format_number(value: Any, fmt: str = "") -> str:
    """Fixed-point formatting driven by an example format such as ``'+0.00'``."""
    if not _is_number(value):
        return ""
    number = float(value) or 0.0  # folds -0.0 into 0.0
    precision = 0
    if "." in fmt:
        precision = sum(1 for ch in fmt.split(".", 1)[1] if ch.isdigit())
    if math.isfinite(number):
        try:
            rounded = Decimal(number).quantize(
                Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP
            )
            text = f"{rounded:f}"
        except InvalidOperation:
            text = f"{number:.{precision}f}"
    else:
        text = f"{number:.{precision}f}"
    if fmt.startswith("+") and not text.startswith("-"):
        text = "+" + text
    return text


def format_date(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    parsed = parse_iso_date(value)
    return format_long_date(parsed) if parsed is not None else ""


def format_title(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value[:1].upper() + value[1:].lower()


Filter = Callable[[Any], str]

_NUMBER_FILTER = re.compile(r"""^number\(\s*(['"])(.*?)\1\s*\)$""")
_DATE_FILTER = re.compile(r"^date\(.*\)$", re.DOTALL)


def _compile_filter(text: str) -> Optional[Filter]:
    """Return a filter callable for ``text``, or ``None`` if unrecognised."""
    text = text.strip()
    match = _NUMBER_FILTER.match(text)
    if match:
        fmt = match.group(2)
        return lambda value: format_number(value, fmt)
    if _DATE_FILTER.match(text):
        return format_date
    if text == "title":
        return format_title
    return None


def _split_pipes(expression: str) -> list[str]:
    """Split on ``|`` outside of quoted strings."""
    parts: list[str] = []
    current: list[str] = []
    quote: Optional[str] = None
    for ch in expression:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
            current.append(ch)
        elif ch == "|":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    parts.append("".join(current))
    return parts


_PATH = re.compile(r"^[^\s|()\[\]'\"{}]+$")


# ── Nodes ─────────────────────────────────────────────────────────────────────


@dataclass
class Text:
    text: str

    def render(self, context: Mapping[str, Any]) -> str:
        return self.text


@dataclass
class Output:
    """``{{ path | filter | ... }}``."""

    segments: list[str]
    filters: list[Filter] = field(default_factory=list)

    @classmethod
    def from_expression(cls, expression: str) -> "Output":
        parts = _split_pipes(expression)
        path = parts[0].strip()
        filters = [_compile_filter(p) for p in parts[1:]]
        if _PATH.match(path) and all(f is not None for f in filters):
            return cls(segments=path.split("."), filters=filters)  # type: ignore[arg-type]
        # Not a path with known filters: plain lookup of the whole expression.
        return cls(segments=expression.strip().split("."))

    def render(self, context: Mapping[str, Any]) -> str:
        value = resolve_path(context, self.segments)
        if not self.filters:
            return to_display(value)
        for apply in self.filters:
            value = apply(value)
        return value


@dataclass
class ForLoop:
    """``{% for var in path %} body {% endfor %}``."""

    var: str
    segments: list[str]
    body: list["Node"]

    def render(self, context: Mapping[str, Any]) -> str:
        sequence = resolve_path(context, self.segments)
        if not isinstance(sequence, (list, tuple)):
            return ""
        out: list[str] = []
        length = len(sequence)
        for i, item in enumerate(sequence):
            loop = {
                "index": i + 1,
                "index0": i,
                "first": i == 0,
                "last": i == length - 1,
                "length": length,
            }
            scope = ChainMap({self.var: item, "loop": loop}, context)
            out.append(render_nodes(self.body, scope))
        return "".join(out)


@dataclass
class Condition:
    """Dotted-path truthiness, or ``path in [literals]`` membership."""

    segments: list[str]
    choices: Optional[list[str]] = None

    _MEMBERSHIP = re.compile(r"^(\S+)\s+in\s+\[(.*)\]$", re.DOTALL)

    @classmethod
    def parse(cls, text: str) -> "Condition":
        text = text.strip()
        match = cls._MEMBERSHIP.match(text)
        if match:
            choices = [
                c.strip().strip("'\"")
                for c in match.group(2).split(",")
                if c.strip()
            ]
            return cls(segments=match.group(1).split("."), choices=choices)
        return cls(segments=text.split("."))

    def evaluate(self, context: Mapping[str, Any]) -> bool:
        value = resolve_path(context, self.segments)
        if self.choices is None:
            try:
                return bool(value)
            except Exception:
                return False
        if isinstance(value, str):
            return value in self.choices
        if _is_number(value):
            return to_display(value) in self.choices
        return False


@dataclass
class Conditional:
    """``{% if cond %} then {% else %} otherwise {% endif %}``."""

    condition: Condition
    then_body: list["Node"]
    else_body: list["Node"] = field(default_factory=list)

    def render(self, context: Mapping[str, Any]) -> str:
        branch = self.then_body if self.condition.evaluate(context) else self.else_body
        return render_nodes(branch, context)


Node = Union[Text, Output, ForLoop, Conditional]


# ── Parser ────────────────────────────────────────────────────────────────────

_FOR_TAG = re.compile(r"^for\s+(\w+)\s+in\s+(.+)$", re.DOTALL)
_IF_TAG = re.compile(r"^if\s+(.+)$", re.DOTALL)
_END_TAGS = frozenset({"endfor", "endif", "else"})


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def parse(self) -> list[Node]:
        nodes, _ = self._parse_block(stop=frozenset(), outer=frozenset())
        return nodes

    def _parse_block(
        self,
        stop: frozenset[str],
        outer: frozenset[str],
    ) -> tuple[list[Node], Optional[Token]]:
        """Parse nodes until a tag in ``stop`` (consumed, returned) or in
        ``outer`` (left for an enclosing block, ``None`` returned)."""
        nodes: list[Node] = []
        while self.pos < len(self.tokens):
            token = self.tokens[self.pos]

            if token.kind == _TEXT:
                nodes.append(Text(token.body))
                self.pos += 1
                continue

            if token.kind == _OUTPUT:
                if token.raw == "{{}}":
                    nodes.append(Text(token.raw))
                else:
                    nodes.append(Output.from_expression(token.body))
                self.pos += 1
                continue

            name = token.body.split(None, 1)[0] if token.body else ""
            if name in stop:
                self.pos += 1
                return nodes, token
            if name in outer:
                return nodes, None

            self.pos += 1
            nodes.extend(self._parse_tag(token, stop | outer))

        return nodes, None

    def _parse_tag(self, token: Token, enclosing: frozenset[str]) -> list[Node]:
        match = _FOR_TAG.match(token.body)
        if match:
            body, end = self._parse_block(frozenset({"endfor"}), enclosing)
            if end is None:
                return [Text(token.raw), *body]
            return [ForLoop(var=match.group(1), segments=match.group(2).strip().split("."), body=body)]

        match = _IF_TAG.match(token.body)
        if match:
            then_body, end = self._parse_block(frozenset({"else", "endif"}), enclosing)
            if end is None:
                return [Text(token.raw), *then_body]
            else_body: list[Node] = []
            if end.body == "else":
                else_body, close = self._parse_block(frozenset({"endif"}), enclosing)
                if close is None:
                    return [Text(token.raw), *then_body, Text(end.raw), *else_body]
            return [Conditional(Condition.parse(match.group(1)), then_body, else_body)]

        # Unknown or stray tag (including an unmatched else/endfor/endif).
        return [Text(token.raw)]


def parse(source: str) -> list[Node]:
    """Parse template source into a node tree."""
    return _Parser(tokenize(source)).parse()


def render_nodes(nodes: Sequence[Node], context: Mapping[str, Any]) -> str:
    return "".join(node.render(context) for node in nodes)


def render(template: str, context: Mapping[str, Any]) -> str:
    """Render ``template`` against ``context``.  Never raises on bad syntax."""
    return render_nodes(parse(template), context)
