"""Diagnostic infrastructure shared by every compiler stage."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Iterable, List, Optional


class Severity(Enum):
	INFO = auto()
	WARNING = auto()
	ERROR = auto()


class ErrorCode(str, Enum):
	# Lexer and line pre-check
	INVALID_BRACKET = "E001"
	INVALID_ANGLE_BRACKET = "E002"
	INVALID_CURLY_BRACKET = "E003"
	EMPTY_PARENTHESES = "E004"
	UNTERMINATED_STRING = "E005"
	INCONSISTENT_INDENTATION = "E006"

	# Parser
	UNDECLARED_VARIABLE = "E101"
	RESERVED_KEYWORD = "E102"
	MISSING_VALUE = "E103"
	UNEXPECTED_TOKEN = "E104"
	MISSING_END = "E105"
	INVALID_SYNTAX = "E106"
	MISSING_INDENT = "E107"
	UNKNOWN_BLOCK = "E108"
	PROCEDURE_ARG_MISMATCH = "E109"

	# Types
	TYPE_MISMATCH = "E201"
	NUMBER_REQUIRED = "E202"
	STRING_REQUIRED = "E203"
	BOOLEAN_REQUIRED = "E204"
	INVALID_BOOLEAN_OPERATION = "E205"

	@property
	def stage(self) -> str:
		if self.value.startswith("E0"):
			return "lexer"
		if self.value.startswith("E1"):
			return "parser"
		return "type"


@dataclass(frozen=True)
class CompilerDiagnostic:
	code: ErrorCode
	message: str
	line: int
	column: int
	severity: Severity = Severity.ERROR
	suggestion: Optional[str] = None
	sprite: Optional[str] = None

	@property
	def is_error(self) -> bool:
		return self.severity == Severity.ERROR

	def for_sprite(self, sprite: str) -> "CompilerDiagnostic":
		"""Attribute the diagnostic to a sprite and prefix its message with ``[sprite]``."""
		return replace(self, sprite=sprite, message=f"[{sprite}] {self.message}")

	def localized(self, message: str, suggestion: Optional[str] = None) -> "CompilerDiagnostic":
		# Translations replace the text but keep the sprite prefix in place.
		if self.sprite is not None:
			message = f"[{self.sprite}] {message}"
		return replace(self, message=message, suggestion=suggestion if suggestion is not None else self.suggestion)

	def to_dict(self) -> dict:
		return {
			"code": self.code.value,
			"stage": self.code.stage,
			"message": self.message,
			"line": self.line,
			"column": self.column,
			"severity": self.severity.name.lower(),
			"suggestion": self.suggestion,
		}

	def __str__(self) -> str:
		text = f"{self.code.value} line {self.line}, column {self.column}: {self.message}"
		if self.suggestion:
			text += f" ({self.suggestion})"
		return text


class DiagnosticEngine:
	def __init__(self) -> None:
		self._items: List[CompilerDiagnostic] = []

	@property
	def items(self) -> List[CompilerDiagnostic]:
		return self._items

	def report(
		self,
		code: ErrorCode,
		message: str,
		line: int,
		column: int,
		suggestion: Optional[str] = None,
		severity: Severity = Severity.ERROR,
	) -> CompilerDiagnostic:
		diagnostic = CompilerDiagnostic(code, message, line, column, severity, suggestion)
		self._items.append(diagnostic)
		return diagnostic

	def extend(self, diagnostics: Iterable[CompilerDiagnostic]) -> None:
		self._items.extend(diagnostics)

	def clear(self) -> None:
		self._items.clear()


class LexerError(Exception):
	"""Fatal tokenizer condition; tokenizing the current source stops immediately."""

	def __init__(self, diagnostic: CompilerDiagnostic) -> None:
		super().__init__(str(diagnostic))
		self.diagnostic = diagnostic
