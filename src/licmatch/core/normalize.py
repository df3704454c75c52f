# normalize.py
# SPDX-License-Identifier: MIT
"""Text normalization for license comparison.

Raw text is turned into a tuple of :class:`Token` objects that carry their
canonical lowercase text plus the line and column of their first source
character. The pipeline, applied line by line:

1. Line breaks (``\\r\\n``, ``\\r``, U+2028, U+2029) are unified.
2. Exotic spaces, dash variants, full-width/CJK commas and curly quotes
   are mapped one-for-one to their ASCII forms, so columns never move.
3. Comment wrappers (``//``, ``/*``, ``*/``, ``#``, ``REM``, ``<!--`` ...)
   and separator runs (``---``, ``***``, ``===``) are blanked out.
4. The line is split into word tokens (letters, digits, ``_`` and ``-``)
   and single-character punctuation tokens, then case-folded.
5. Multi-token phrases ("copyright holder", "per cent", "(c)", ``''``) are
   merged into one token and spelling variants collapse to one form.

``Token.key`` applies a final equivalence table used only for comparison
(``copyright``/``(c)``/``©`` all compare equal, as do both quote styles).
Each token also keeps its source wording and end position, which template
variable rules are matched against.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

__all__ = [
    "Token",
    "NormalizedRun",
    "EQUIVALENT_WORDS",
    "MATCH_EQUIVALENTS",
    "SKIPPABLE_TOKENS",
    "normalize",
    "render",
    "token_texts",
    "comparison_keys",
    "is_license_text_equivalent",
    "first_license_token",
    "is_single_token_string",
]

# Single code point substitutions; keeping them one-for-one preserves columns.
_SPACES = (
    "\t\x0b\x0c\u00a0\u1680\u180e\u2000\u2001\u2002\u2003\u2004\u2005"
    "\u2006\u2007\u2008\u2009\u200a\u200b\u202f\u205f\u2060\u3000\ufeff"
)
_DASHES = "\u2010\u2011\u2012\u2013\u2014\u2015\u2212\ufe58\ufe63\uff0d"
_COMMAS = "\uff0c\ufe10\ufe50\u3001"
_SINGLE_QUOTES = "\u2018\u2019\u201a\u201b`\u2032"
_DOUBLE_QUOTES = "\u201c\u201d\u201e\u201f\u2033"

_CHAR_MAP = str.maketrans(
    {
        **{ch: " " for ch in _SPACES},
        **{ch: "-" for ch in _DASHES},
        **{ch: "," for ch in _COMMAS},
        **{ch: "'" for ch in _SINGLE_QUOTES},
        **{ch: '"' for ch in _DOUBLE_QUOTES},
    }
)

_LINE_BREAK_RE = re.compile("\r\n|[\r\u2028\u2029\x85]")
# Repeated markers ("-- --", "* *", "*/ */") are stripped as one run.
_END_COMMENT_RE = re.compile(r"((?:(?:\*+/|-->|-\}|\*\)|(?<=\s)\*+)\s*)+)$")
_START_COMMENT_RE = re.compile(
    r"^\s*((?:(?:/{2,}|/\*+|\*+|#+|'(?=\s)|rem(?=\s)|<!--|--|;+|\(\*|\{-|\.\\\")\s*)+)",
    re.IGNORECASE,
)
_SEPARATOR_RE = re.compile(r"[-=*]{3,}\s*$")
_TOKEN_RE = re.compile(r"[\w-]+|[^\w\s]")

EQUIVALENT_WORDS: dict[str, str] = {
    "&": "and",
    "acknowledgment": "acknowledgement",
    "analogue": "analog",
    "analyse": "analyze",
    "artefact": "artifact",
    "authorisation": "authorization",
    "authorised": "authorized",
    "calibre": "caliber",
    "cancelled": "canceled",
    "capitalisation": "capitalization",
    "capitalisations": "capitalizations",
    "catalogue": "catalog",
    "categorise": "categorize",
    "centre": "center",
    "emphasised": "emphasized",
    "favour": "favor",
    "favourite": "favorite",
    "fulfil": "fulfill",
    "fulfilment": "fulfillment",
    "initialise": "initialize",
    "judgment": "judgement",
    "labelling": "labeling",
    "labour": "labor",
    "licence": "license",
    "licences": "licenses",
    "licenced": "licensed",
    "maximise": "maximize",
    "modelled": "modeled",
    "modelling": "modeling",
    "offence": "offense",
    "optimise": "optimize",
    "organisation": "organization",
    "organise": "organize",
    "practise": "practice",
    "programme": "program",
    "realise": "realize",
    "recognise": "recognize",
    "signalling": "signaling",
    "utilisation": "utilization",
    "whilst": "while",
    "wilful": "willful",
    "non-commercial": "noncommercial",
    "sublicense": "sub-license",
    "non-infringement": "noninfringement",
}

# (first word, second word) -> merged token text.
_PHRASES: dict[tuple[str, str], str] = {
    ("copyright", "holder"): "copyright-holder",
    ("copyright", "holders"): "copyright-holders",
    ("copyright", "owner"): "copyright-holder",
    ("copyright", "owners"): "copyright-holders",
    ("per", "cent"): "percent",
}

MATCH_EQUIVALENTS: dict[str, str] = {
    "copyright": "-c-",
    "(c)": "-c-",
    "©": "-c-",
    '"': "'",
    "http": "https",
}

# Comment debris that may be dropped on either side of a comparison.
SKIPPABLE_TOKENS = frozenset({"*", "#", "/"})


@dataclass(frozen=True, slots=True)
class Token:
    """One canonical token plus where it came from.

    Attributes:
        text (str): Lowercase canonical text of the token.
        line (int): 1-based source line.
        column (int): 0-based column within that line.
        source (str): The candidate's own wording for this token, case and
            spelling intact. Merged phrases keep one space between words.
        end (tuple[int, int]): ``(line, column)`` just past the last source
            character.
    """

    text: str
    line: int
    column: int
    source: str
    end: tuple[int, int]

    @property
    def key(self) -> str:
        """Comparison form of the token."""
        return MATCH_EQUIVALENTS.get(self.text, self.text)

    @property
    def skippable(self) -> bool:
        return self.text in SKIPPABLE_TOKENS

    def touches(self, nxt: "Token") -> bool:
        """Return True if ``nxt`` starts right where this token ends."""
        return self.end == (nxt.line, nxt.column)


NormalizedRun = tuple[Token, ...]


def _blank(line: str, start: int, end: int) -> str:
    return line[:start] + " " * (end - start) + line[end:]


def _strip_line(line: str, *, line_start: bool) -> str:
    """Blank out comment wrappers and separator runs without moving columns."""
    m = _END_COMMENT_RE.search(line)
    if m:
        line = _blank(line, m.start(1), m.end(1))
    if line_start:
        m = _START_COMMENT_RE.match(line)
        if m:
            line = _blank(line, m.start(1), m.end(1))
    m = _SEPARATOR_RE.search(line)
    if m:
        line = line[: m.start()]
    return line


def _raw_tokens(text: str, start_line: int, start_column: int) -> list[Token]:
    """Split text into unmerged tokens; ``text`` holds the lowercase lexeme."""
    raw: list[Token] = []
    lines = _LINE_BREAK_RE.sub("\n", text).split("\n")
    for offset, original in enumerate(lines):
        line = _strip_line(original.translate(_CHAR_MAP), line_start=(offset > 0 or start_column == 0))
        column_base = start_column if offset == 0 else 0
        line_no = start_line + offset
        for m in _TOKEN_RE.finditer(line):
            raw.append(
                Token(
                    m.group(0).lower(),
                    line_no,
                    column_base + m.start(),
                    original[m.start():m.end()],
                    (line_no, column_base + m.end()),
                )
            )
    return raw


def _joined(text: str, parts: Sequence[Token]) -> Token:
    source = parts[0].source
    for prev, nxt in zip(parts, parts[1:]):
        source += nxt.source if prev.touches(nxt) else f" {nxt.source}"
    return Token(text, parts[0].line, parts[0].column, source, parts[-1].end)


def _merge_phrases(raw: list[Token]) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    n = len(raw)
    while i < n:
        tok = raw[i]
        if tok.text == "'" and i + 1 < n and raw[i + 1].text == "'" and tok.touches(raw[i + 1]):
            tokens.append(_joined('"', raw[i:i + 2]))
            i += 2
            continue
        if (
            tok.text == "("
            and i + 2 < n
            and raw[i + 1].text == "c"
            and raw[i + 2].text == ")"
            and tok.touches(raw[i + 1])
            and raw[i + 1].touches(raw[i + 2])
        ):
            tokens.append(_joined("(c)", raw[i:i + 3]))
            i += 3
            continue
        if i + 1 < n:
            merged = _PHRASES.get((tok.text, raw[i + 1].text))
            if merged is not None:
                tokens.append(_joined(merged, raw[i:i + 2]))
                i += 2
                continue
        canonical = EQUIVALENT_WORDS.get(tok.text)
        tokens.append(tok if canonical is None else Token(canonical, tok.line, tok.column, tok.source, tok.end))
        i += 1
    return tokens


def normalize(text: str | None, *, start_line: int = 1, start_column: int = 0) -> NormalizedRun:
    """Normalize raw text into canonical tokens.

    Never raises for string input; ``None`` is treated as empty text.

    Args:
        text (str | None): Text to normalize.
        start_line (int): Line number assigned to the first line. Used when
            normalizing a fragment of a larger document such as a template.
        start_column (int): Column at which the first line starts. When it
            is non-zero the first line is not treated as a line start, so a
            leading ``*`` or ``#`` there is kept.

    Returns:
        NormalizedRun: Tuple of tokens in source order.
    """
    if not text:
        return ()
    return tuple(_merge_phrases(_raw_tokens(text, start_line, start_column)))


def render(run: Iterable[Token]) -> str:
    """Join token texts with single spaces."""
    return " ".join(token.text for token in run)


def token_texts(text: str | None) -> list[str]:
    return [token.text for token in normalize(text)]


def comparison_keys(run: Sequence[Token]) -> list[str]:
    """Return comparison keys of the run with skippable tokens removed."""
    return [token.key for token in run if not token.skippable]


def is_license_text_equivalent(text_a: str | None, text_b: str | None) -> bool:
    """Return True if two license texts are equivalent under the matching rules.

    Case, whitespace, dash style, comment wrappers and the equivalence
    tables are ignored; any other punctuation difference is significant.
    ``None`` is equivalent to ``None`` and to the empty string.
    """
    if text_a is None:
        return not text_b
    if text_b is None:
        return not text_a
    if text_a == text_b:
        return True
    return comparison_keys(normalize(text_a)) == comparison_keys(normalize(text_b))


def first_license_token(text: str | None) -> str | None:
    run = normalize(text)
    return run[0].text if run else None


def is_single_token_string(text: str) -> bool:
    """Return True if ``text`` is a single line holding at most one token."""
    if "\n" in text:
        return False
    return len(normalize(text)) <= 1
