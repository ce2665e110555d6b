"""Rust source tokenizer used by the definition extractor."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from serde_struct_reconciler.failures import FailureKind, ReconciliationError

_IDENTIFIER = re.compile(r"r#[^\W\d]\w*|[^\W\d]\w*")
_NUMBER = re.compile(r"\d[\w]*(?:\.\d[\w]*)?(?:[eE][+-]?\d+)?")
_RAW_STRING_START = re.compile(r'[bc]?r(#*)"')
_PREFIXED_STRING_START = re.compile(r'[bc]"')
_BYTE_CHAR_START = re.compile(r"b'")
_MULTI_CHAR_PUNCT = ("::", "->", "=>")
_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")": "(", "]": "[", "}": "{"}


class SourceUnparseableError(ReconciliationError):
    """Raised when existing source text is not syntactically valid Rust."""

    kind = FailureKind.SOURCE_UNPARSEABLE

    def __init__(self, message: str, *, line: int, column: int) -> None:
        super().__init__(
            f"{message} at line {line}, column {column}",
            location=f"line {line}, column {column}",
        )
        self.line = line
        self.column = column


class TokenKind(str, Enum):
    """Token categories relevant to item extraction."""

    IDENT = "ident"
    LIFETIME = "lifetime"
    LITERAL = "literal"
    PUNCT = "punct"
    DOC_COMMENT = "doc_comment"


@dataclass(frozen=True)
class Token:
    """One lexical token with its source offsets."""

    kind: TokenKind
    text: str
    start: int
    end: int

    def is_punct(self, text: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text == text

    def is_ident(self, text: str) -> bool:
        return self.kind is TokenKind.IDENT and self.text == text


def tokenize_rust_source(text: str) -> tuple[Token, ...]:
    """Split Rust source into tokens, dropping whitespace and non-doc comments.

    Raises:
      SourceUnparseableError: On unterminated literals or comments and on
        unbalanced delimiters.
    """
    return _Lexer(text).run()


def position_of(text: str, offset: int) -> tuple[int, int]:
    """Return the 1-based line and column of a character offset."""
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def unparseable(text: str, offset: int, message: str) -> SourceUnparseableError:
    """Build a parse error located at ``offset`` in ``text``."""
    line, column = position_of(text, offset)
    return SourceUnparseableError(message, line=line, column=column)


class _Lexer:
    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0
        self._tokens: list[Token] = []
        self._open: list[tuple[str, int]] = []

    def run(self) -> tuple[Token, ...]:
        text = self._text
        while self._pos < len(text):
            char = text[self._pos]
            if char.isspace():
                self._pos += 1
            elif text.startswith("//", self._pos):
                self._line_comment()
            elif text.startswith("/*", self._pos):
                self._block_comment()
            elif char == '"':
                self._string(self._pos, self._pos)
            elif char in "bcr" and self._prefixed_literal():
                continue
            elif char == "'":
                self._quote()
            elif char == "_" or char.isalpha():
                self._identifier()
            elif char in "0123456789":
                self._number()
            else:
                self._punct()
        if self._open:
            opener, offset = self._open[-1]
            raise unparseable(text, offset, f"Unclosed delimiter '{opener}'")
        return tuple(self._tokens)

    def _emit(self, kind: TokenKind, start: int, end: int) -> None:
        self._tokens.append(Token(kind=kind, text=self._text[start:end], start=start, end=end))
        self._pos = end

    def _line_comment(self) -> None:
        start = self._pos
        end = self._text.find("\n", start)
        if end == -1:
            end = len(self._text)
        body = self._text[start:end]
        if body.startswith("///") and not body.startswith("////"):
            self._emit(TokenKind.DOC_COMMENT, start, end)
        else:
            self._pos = end

    def _block_comment(self) -> None:
        text = self._text
        start = self._pos
        pos = start + 2
        depth = 1
        while depth:
            if pos >= len(text):
                raise unparseable(text, start, "Unterminated block comment")
            if text.startswith("/*", pos):
                depth += 1
                pos += 2
            elif text.startswith("*/", pos):
                depth -= 1
                pos += 2
            else:
                pos += 1
        body = text[start:pos]
        if body.startswith("/**") and not body.startswith("/***") and body != "/**/":
            self._emit(TokenKind.DOC_COMMENT, start, pos)
        else:
            self._pos = pos

    def _string(self, start: int, quote: int) -> None:
        text = self._text
        pos = quote + 1
        while True:
            if pos >= len(text):
                raise unparseable(text, start, "Unterminated string literal")
            char = text[pos]
            if char == "\\":
                pos += 2
            elif char == '"':
                self._emit(TokenKind.LITERAL, start, pos + 1)
                return
            else:
                pos += 1

    def _prefixed_literal(self) -> bool:
        text = self._text
        start = self._pos
        raw = _RAW_STRING_START.match(text, start)
        if raw:
            terminator = '"' + raw.group(1)
            end = text.find(terminator, raw.end())
            if end == -1:
                raise unparseable(text, start, "Unterminated raw string literal")
            self._emit(TokenKind.LITERAL, start, end + len(terminator))
            return True
        if _PREFIXED_STRING_START.match(text, start):
            self._string(start, start + 1)
            return True
        if _BYTE_CHAR_START.match(text, start):
            self._char_literal(start, start + 1)
            return True
        return False

    def _quote(self) -> None:
        text = self._text
        start = self._pos
        following = text[start + 1 : start + 3]
        if following.startswith("\\") or (len(following) == 2 and following[1] == "'"):
            self._char_literal(start, start)
            return
        identifier = _IDENTIFIER.match(text, start + 1)
        if identifier:
            self._emit(TokenKind.LIFETIME, start, identifier.end())
            return
        raise unparseable(text, start, "Unterminated character literal")

    def _char_literal(self, start: int, quote: int) -> None:
        text = self._text
        if text.startswith("\\", quote + 1):
            end = text.find("'", quote + 3)
        else:
            end = quote + 2 if text.startswith("'", quote + 2) else -1
        if end == -1:
            raise unparseable(text, start, "Unterminated character literal")
        self._emit(TokenKind.LITERAL, start, end + 1)

    def _identifier(self) -> None:
        match = _IDENTIFIER.match(self._text, self._pos)
        assert match is not None
        self._emit(TokenKind.IDENT, self._pos, match.end())

    def _number(self) -> None:
        match = _NUMBER.match(self._text, self._pos)
        assert match is not None
        self._emit(TokenKind.LITERAL, self._pos, match.end())

    def _punct(self) -> None:
        text = self._text
        start = self._pos
        for punct in _MULTI_CHAR_PUNCT:
            if text.startswith(punct, start):
                self._emit(TokenKind.PUNCT, start, start + len(punct))
                return
        char = text[start]
        if char in _OPENERS:
            self._open.append((char, start))
        elif char in _CLOSERS:
            if not self._open or self._open[-1][0] != _CLOSERS[char]:
                raise unparseable(text, start, f"Unexpected closing delimiter '{char}'")
            self._open.pop()
        self._emit(TokenKind.PUNCT, start, start + 1)
