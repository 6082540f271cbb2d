"""Compilation pipeline: tokenize, parse and check every sprite, then generate."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .checker import Globals, SemanticChecker
from .config import CompilerOptions
from .diagnostics import CompilerDiagnostic, DiagnosticEngine, LexerError
from .generator import generate
from .lexer import Lexer, Token
from .nodes import Program, SpriteUnit
from .parser import Parser


logger = logging.getLogger(__name__)

DEFAULT_SPRITE = "Sprite1"


@dataclass
class SpriteSource:
	name: str
	code: str
	is_stage: bool = False
	costumes: List[str] = field(default_factory=list)
	sounds: List[str] = field(default_factory=list)


@dataclass
class CompileResult:
	program: str
	preview: str
	success: bool
	diagnostics: List[CompilerDiagnostic]
	debug: Optional[Dict[str, Any]] = None
	duration_ms: float = 0.0

	@property
	def errors(self) -> List[CompilerDiagnostic]:
		return [d for d in self.diagnostics if d.is_error]

	@property
	def warnings(self) -> List[CompilerDiagnostic]:
		return [d for d in self.diagnostics if not d.is_error]


@dataclass
class _SpriteFrontEnd:
	source: SpriteSource
	tokens: List[Token]
	program: Optional[Program]
	diagnostics: DiagnosticEngine


class WhiskersCompiler:
	def __init__(self, options: Optional[CompilerOptions] = None) -> None:
		self.options = options or CompilerOptions()

	def compile(self, sprites: Iterable[SpriteSource], debug: bool = False) -> CompileResult:
		sprites = list(sprites)
		start = time.perf_counter()
		front_ends = [self._front_end(sprite) for sprite in sprites]

		stage = next((fe.program for fe in front_ends if fe.source.is_stage and fe.program is not None), None)
		globals_ = Globals.from_program(stage) if stage is not None else None
		for fe in front_ends:
			if fe.program is None:
				continue
			scope = None if fe.source.is_stage else globals_
			SemanticChecker(fe.program, scope, fe.diagnostics).check()

		diagnostics: List[CompilerDiagnostic] = []
		prefix = len(sprites) > 1
		for fe in front_ends:
			for diagnostic in fe.diagnostics.items:
				diagnostics.append(diagnostic.for_sprite(fe.source.name) if prefix else diagnostic)

		units = [
			SpriteUnit(fe.source.name, fe.program, fe.source.is_stage, list(fe.source.costumes), list(fe.source.sounds))
			for fe in front_ends
			if fe.program is not None
		]
		generated = generate(units, self.options)
		duration_ms = (time.perf_counter() - start) * 1000

		success = not any(d.is_error for d in diagnostics)
		logger.info(
			"compiled %d sprite(s) in %.1f ms: %d error(s), %d warning(s)",
			len(sprites),
			duration_ms,
			sum(1 for d in diagnostics if d.is_error),
			sum(1 for d in diagnostics if not d.is_error),
		)
		return CompileResult(
			program=generated.program,
			preview=generated.preview,
			success=success,
			diagnostics=diagnostics,
			debug=self._debug_info(front_ends) if debug else None,
			duration_ms=duration_ms,
		)

	def _front_end(self, sprite: SpriteSource) -> _SpriteFrontEnd:
		diagnostics = DiagnosticEngine()
		started = time.perf_counter()
		try:
			tokens = Lexer(sprite.code, self.options.tab_width).tokenize()
		except LexerError as exc:
			diagnostics.extend([exc.diagnostic])
			logger.debug("%s: tokenizing stopped at line %d", sprite.name, exc.diagnostic.line)
			return _SpriteFrontEnd(sprite, [], None, diagnostics)
		lexed = time.perf_counter()
		program = Parser(tokens, diagnostics).parse()
		logger.debug(
			"%s: %d tokens in %.2f ms, parsed in %.2f ms",
			sprite.name,
			len(tokens),
			(lexed - started) * 1000,
			(time.perf_counter() - lexed) * 1000,
		)
		return _SpriteFrontEnd(sprite, tokens, program, diagnostics)

	@staticmethod
	def _debug_info(front_ends: List[_SpriteFrontEnd]) -> Dict[str, Any]:
		return {
			"sprites": [
				{
					"name": fe.source.name,
					"isStage": fe.source.is_stage,
					"tokenCount": len(fe.tokens),
					"ast": fe.program,
				}
				for fe in front_ends
			]
		}


def compile_many(sprites: Iterable[SpriteSource], debug: bool = False, options: Optional[CompilerOptions] = None) -> CompileResult:
	"""Compile every sprite into one program; diagnostics carry a ``[Name]`` prefix when there is more than one."""
	return WhiskersCompiler(options).compile(sprites, debug=debug)


def compile_one(source: str, options: Optional[CompilerOptions] = None) -> CompileResult:
	return WhiskersCompiler(options).compile([SpriteSource(DEFAULT_SPRITE, source)])
