"""Tokenizer with Python-style indentation tracking."""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from .diagnostics import CompilerDiagnostic, ErrorCode, LexerError, Severity
from .grammar import KEYWORDS, OPERATORS, TWO_CHAR_OPERATORS


# ---------------------------------------------------------------------------
# Tokens


class TokenKind(Enum):
	IDENTIFIER = auto()
	KEYWORD = auto()
	STRING = auto()
	NUMBER = auto()
	OPERATOR = auto()
	LPAREN = auto()
	RPAREN = auto()
	LBRACKET = auto()
	RBRACKET = auto()
	LBRACE = auto()
	RBRACE = auto()
	COLON = auto()
	COMMA = auto()
	NEWLINE = auto()
	INDENT = auto()
	DEDENT = auto()
	COMMENT = auto()
	EOF = auto()


PUNCTUATION = {
	"(": TokenKind.LPAREN,
	")": TokenKind.RPAREN,
	"[": TokenKind.LBRACKET,
	"]": TokenKind.RBRACKET,
	"{": TokenKind.LBRACE,
	"}": TokenKind.RBRACE,
	":": TokenKind.COLON,
	",": TokenKind.COMMA,
}

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


@dataclass(frozen=True)
class Token:
	kind: TokenKind
	text: str
	line: int
	column: int

	def is_word(self, *words: str) -> bool:
		if self.kind not in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
			return False
		lowered = self.text.lower()
		return any(lowered == w.lower() for w in words)

	def __str__(self) -> str:
		if self.kind in (TokenKind.NEWLINE, TokenKind.INDENT, TokenKind.DEDENT, TokenKind.EOF):
			return self.kind.name.lower().replace("newline", "end of line").replace("eof", "end of file")
		if self.kind == TokenKind.STRING:
			return f'"{self.text}"'
		return f"'{self.text}'"


# ---------------------------------------------------------------------------
# Character classifiers


_ALPHA = frozenset(string.ascii_letters + "_")
_DIGITS = frozenset(string.digits)


def is_alpha(ch: str) -> bool:
	return ch in _ALPHA


def is_digit(ch: str) -> bool:
	return ch in _DIGITS


def is_alnum(ch: str) -> bool:
	return ch in _ALPHA or ch in _DIGITS


def is_whitespace(ch: str) -> bool:
	return ch in (" ", "\t", "\r", "\f", "\v")


def is_newline(ch: str) -> bool:
	return ch == "\n"


# ---------------------------------------------------------------------------
# Scan cursor and token extractors


class Cursor:
	"""Mutable position over the source text shared by the extractors."""

	def __init__(self, source: str) -> None:
		self.source = source
		self.index = 0
		self.line = 1
		self.column = 1

	def peek(self, offset: int = 0) -> str:
		pos = self.index + offset
		if pos >= len(self.source):
			return ""
		return self.source[pos]

	def advance(self) -> str:
		ch = self.source[self.index]
		self.index += 1
		if ch == "\n":
			self.line += 1
			self.column = 1
		else:
			self.column += 1
		return ch

	def at_end(self) -> bool:
		return self.index >= len(self.source)


def extract_string(cursor: Cursor) -> Token:
	line, column = cursor.line, cursor.column
	quote = cursor.advance()
	chars: List[str] = []
	while True:
		ch = cursor.peek()
		if ch == "" or is_newline(ch):
			raise LexerError(
				CompilerDiagnostic(
					ErrorCode.UNTERMINATED_STRING,
					f"Unterminated string starting at line {line}, column {column}",
					line,
					column,
					Severity.ERROR,
					f"Close the text with a matching {quote} on the same line",
				)
			)
		cursor.advance()
		if ch == quote:
			break
		if ch == "\\" and cursor.peek() not in ("", "\n"):
			escaped = cursor.advance()
			chars.append(ESCAPES.get(escaped, "\\" + escaped))
			continue
		chars.append(ch)
	return Token(TokenKind.STRING, "".join(chars), line, column)


def extract_number(cursor: Cursor) -> Token:
	line, column = cursor.line, cursor.column
	chars: List[str] = []
	if cursor.peek() == "-":
		chars.append(cursor.advance())
	seen_dot = False
	while True:
		ch = cursor.peek()
		if is_digit(ch):
			chars.append(cursor.advance())
		elif ch == "." and not seen_dot and is_digit(cursor.peek(1)):
			seen_dot = True
			chars.append(cursor.advance())
		else:
			break
	return Token(TokenKind.NUMBER, "".join(chars), line, column)


def extract_word(cursor: Cursor) -> Token:
	line, column = cursor.line, cursor.column
	chars: List[str] = []
	while is_alnum(cursor.peek()):
		chars.append(cursor.advance())
	text = "".join(chars)
	kind = TokenKind.KEYWORD if text in KEYWORDS else TokenKind.IDENTIFIER
	return Token(kind, text, line, column)


def extract_operator(cursor: Cursor) -> Token:
	line, column = cursor.line, cursor.column
	pair = cursor.peek() + cursor.peek(1)
	if pair in TWO_CHAR_OPERATORS:
		cursor.advance()
		cursor.advance()
		return Token(TokenKind.OPERATOR, pair, line, column)
	return Token(TokenKind.OPERATOR, cursor.advance(), line, column)


def extract_comment(cursor: Cursor) -> Token:
	line, column = cursor.line, cursor.column
	cursor.advance()
	cursor.advance()
	chars: List[str] = []
	while not cursor.at_end() and not is_newline(cursor.peek()):
		chars.append(cursor.advance())
	return Token(TokenKind.COMMENT, "".join(chars).strip(), line, column)


# ---------------------------------------------------------------------------
# Indentation


class IndentationResolver:
	def __init__(self) -> None:
		self.stack: List[int] = [0]

	@property
	def depth(self) -> int:
		return len(self.stack) - 1

	def resolve(self, width: int, line: int, column: int) -> List[Token]:
		tokens: List[Token] = []
		if width > self.stack[-1]:
			self.stack.append(width)
			tokens.append(Token(TokenKind.INDENT, "", line, column))
			return tokens
		while width < self.stack[-1]:
			self.stack.pop()
			tokens.append(Token(TokenKind.DEDENT, "", line, column))
		if width != self.stack[-1]:
			raise LexerError(
				CompilerDiagnostic(
					ErrorCode.INCONSISTENT_INDENTATION,
					f"Inconsistent indentation at line {line}",
					line,
					column,
					Severity.ERROR,
					f"Indent this line by {self.stack[-1]} spaces to match an enclosing block",
				)
			)
		return tokens

	def close(self, line: int, column: int) -> List[Token]:
		tokens = [Token(TokenKind.DEDENT, "", line, column) for _ in range(self.depth)]
		self.stack = [0]
		return tokens


# ---------------------------------------------------------------------------
# Lexer


class Lexer:
	def __init__(self, source: str, tab_width: int = 4) -> None:
		self.cursor = Cursor(source)
		self.tab_width = tab_width
		self.indentation = IndentationResolver()
		self.tokens: List[Token] = []

	def tokenize(self) -> List[Token]:
		while not self.cursor.at_end():
			self._scan_line()
		last = self.tokens[-1] if self.tokens else None
		if last is not None and last.kind != TokenKind.NEWLINE:
			self._emit(TokenKind.NEWLINE, "")
		self.tokens.extend(self.indentation.close(self.cursor.line, self.cursor.column))
		self._emit(TokenKind.EOF, "")
		return self.tokens

	def _emit(self, kind: TokenKind, text: str) -> None:
		self.tokens.append(Token(kind, text, self.cursor.line, self.cursor.column))

	def _measure_indent(self) -> int:
		width = 0
		while True:
			ch = self.cursor.peek()
			if ch == " ":
				width += 1
			elif ch == "\t":
				width += self.tab_width
			else:
				return width
			self.cursor.advance()

	def _rest_is_blank(self) -> bool:
		offset = 0
		while True:
			ch = self.cursor.peek(offset)
			if ch == "" or is_newline(ch):
				return True
			if not is_whitespace(ch):
				return False
			offset += 1

	def _scan_line(self) -> None:
		width = self._measure_indent()
		if self._rest_is_blank():
			self._skip_to_line_end()
			return
		if self.cursor.peek() == "/" and self.cursor.peek(1) == "/":
			self.tokens.append(extract_comment(self.cursor))
			self._finish_line()
			return
		self.tokens.extend(self.indentation.resolve(width, self.cursor.line, self.cursor.column))
		while not self.cursor.at_end() and not is_newline(self.cursor.peek()):
			token = self._next_token()
			if token is not None:
				self.tokens.append(token)
		self._finish_line()

	def _skip_to_line_end(self) -> None:
		while not self.cursor.at_end() and not is_newline(self.cursor.peek()):
			self.cursor.advance()
		if not self.cursor.at_end():
			self.cursor.advance()

	def _finish_line(self) -> None:
		self._emit(TokenKind.NEWLINE, "")
		if not self.cursor.at_end():
			self.cursor.advance()

	def _next_token(self) -> Optional[Token]:
		cursor = self.cursor
		ch = cursor.peek()
		if is_whitespace(ch):
			cursor.advance()
			return None
		if ch == "/" and cursor.peek(1) == "/":
			return extract_comment(cursor)
		if ch in ('"', "'"):
			return extract_string(cursor)
		if is_digit(ch) or (ch == "-" and is_digit(cursor.peek(1))):
			return extract_number(cursor)
		if is_alpha(ch):
			return extract_word(cursor)
		if ch in OPERATORS:
			return extract_operator(cursor)
		if ch in PUNCTUATION:
			line, column = cursor.line, cursor.column
			cursor.advance()
			return Token(PUNCTUATION[ch], ch, line, column)
		# unknown characters are skipped
		cursor.advance()
		return None


def tokenize(source: str, tab_width: int = 4) -> List[Token]:
	"""Convert ``source`` into tokens terminated by EOF; raises ``LexerError`` on fatal input."""
	return Lexer(source, tab_width).tokenize()
