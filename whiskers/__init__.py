"""Whiskers: compile indentation-based block scripts into a browser program."""

from .checker import Globals, check
from .compiler import CompileResult, SpriteSource, WhiskersCompiler, compile_many, compile_one
from .config import CompilerOptions
from .diagnostics import CompilerDiagnostic, DiagnosticEngine, ErrorCode, LexerError, Severity
from .generator import GeneratedProgram, generate
from .lexer import Token, TokenKind, tokenize
from .nodes import BlockNode, Literal, Procedure, Program, Reporter, Script, SpriteUnit
from .parser import parse

__version__ = "1.0.0"

__all__ = [
	"BlockNode",
	"CompileResult",
	"CompilerDiagnostic",
	"CompilerOptions",
	"DiagnosticEngine",
	"ErrorCode",
	"GeneratedProgram",
	"Globals",
	"LexerError",
	"Literal",
	"Procedure",
	"Program",
	"Reporter",
	"Script",
	"Severity",
	"SpriteSource",
	"SpriteUnit",
	"Token",
	"TokenKind",
	"WhiskersCompiler",
	"check",
	"compile_many",
	"compile_one",
	"generate",
	"parse",
	"tokenize",
]
