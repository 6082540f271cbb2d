"""Semantic checks: declarations, argument kinds and custom block arity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .diagnostics import CompilerDiagnostic, DiagnosticEngine, ErrorCode, Severity
from .grammar import ValueKind, lookup
from .nodes import Argument, BlockNode, Literal, Procedure, Program, Reporter, Script


LOGIC_OPERATORS = ("and", "or", "not")


@dataclass
class Globals:
	"""Names declared on the stage, visible to every sprite of the project."""

	variables: List[str] = field(default_factory=list)
	lists: List[str] = field(default_factory=list)

	@classmethod
	def from_program(cls, program: Program) -> "Globals":
		return cls(variables=list(program.variables), lists=list(program.lists))


def _is_numeric(text: str) -> bool:
	try:
		float(text)
	except ValueError:
		return False
	return text.strip() != ""


def _kind_name(kind: ValueKind) -> str:
	return kind.name.lower()


class SemanticChecker:
	def __init__(self, program: Program, globals_: Optional[Globals] = None, diagnostics: Optional[DiagnosticEngine] = None) -> None:
		self.program = program
		self.globals = globals_ or Globals()
		self.diagnostics = diagnostics or DiagnosticEngine()
		self._params: List[str] = []

	def check(self) -> List[CompilerDiagnostic]:
		for script in self.program.scripts:
			self._check_script(script)
		for procedure in self.program.procedures:
			self._check_procedure(procedure)
		return self.diagnostics.items

	def _report(self, code: ErrorCode, message: str, node, suggestion: Optional[str] = None, severity: Severity = Severity.ERROR) -> None:
		self.diagnostics.report(code, message, node.line, node.column, suggestion, severity)

	def _check_script(self, script: Script) -> None:
		self._params = []
		self._check_block(script.trigger)
		self._check_sequence(script.body)

	def _check_procedure(self, procedure: Procedure) -> None:
		self._params = procedure.params
		try:
			self._check_sequence(procedure.body)
		finally:
			self._params = []

	def _check_sequence(self, blocks: List[BlockNode]) -> None:
		for block in blocks:
			self._check_block(block)

	# -----------------------------------------------------------------------
	# Blocks

	def _check_block(self, block: BlockNode) -> None:
		if block.name == "call":
			self._check_call(block)
		elif block.name == "variable":
			self._check_reference(block, block.fields.get("VARIABLE", ""), is_list=False)
		elif block.name == "listContents":
			self._check_reference(block, block.fields.get("LIST", ""), is_list=True)
		elif block.name == "argument":
			if block.fields.get("NAME") not in self._params:
				self._report(ErrorCode.UNDECLARED_VARIABLE, f"'{block.fields.get('NAME')}' is not a parameter of this custom block", block)
		else:
			if "VARIABLE" in block.fields:
				self._check_reference(block, block.fields["VARIABLE"], is_list=False)
			if "LIST" in block.fields:
				self._check_reference(block, block.fields["LIST"], is_list=True)
			self._check_arguments(block)

		for argument in block.arguments:
			if isinstance(argument, Reporter):
				self._check_block(argument.node)
		self._check_sequence(block.body)
		self._check_sequence(block.else_body)

	def _check_call(self, block: BlockNode) -> None:
		name = block.fields.get("NAME", "")
		expected = self.program.signatures.get(name)
		if expected is None:
			self._report(ErrorCode.UNKNOWN_BLOCK, f"Unknown custom block '{name}'", block, f"Define it first: define {name}")
			return
		given = len(block.arguments)
		if given != expected:
			plural = "input" if expected == 1 else "inputs"
			self._report(
				ErrorCode.PROCEDURE_ARG_MISMATCH,
				f"Custom block '{name}' expects {expected} {plural} but got {given}",
				block,
				f"Pass exactly {expected} value{'s' if expected != 1 else ''} after '{name}'",
			)

	def _check_reference(self, node: BlockNode, name: str, is_list: bool) -> None:
		if name in self._params and not is_list:
			return
		declared = self.program.declaration(name, is_list)
		if declared is not None:
			if declared.line > node.line:
				kind = "List" if is_list else "Variable"
				self._report(
					ErrorCode.UNDECLARED_VARIABLE,
					f"{kind} '{name}' is used before it is declared on line {declared.line}",
					node,
					"Move the declaration to the top of the sprite",
				)
			return
		global_names = self.globals.lists if is_list else self.globals.variables
		if name in global_names:
			return
		other = self.program.declaration(name, not is_list)
		if is_list:
			suggestion = f"'{name}' is a variable, not a list" if other else f"Declare it first: list {name} = []"
			self._report(ErrorCode.UNDECLARED_VARIABLE, f"List '{name}' is not declared", node, suggestion)
		else:
			suggestion = f"'{name}' is a list, not a variable" if other else f"Declare it first: var {name} = 0, or put text in quotes"
			self._report(ErrorCode.UNDECLARED_VARIABLE, f"Variable '{name}' is not declared", node, suggestion)

	# -----------------------------------------------------------------------
	# Argument kinds

	def _check_arguments(self, block: BlockNode) -> None:
		spec = lookup(block.name)
		if spec is None:
			return
		for expected, argument in zip(spec.slots, block.arguments):
			self._check_slot(block, expected, argument)

	def _kind_of(self, argument: Argument) -> ValueKind:
		if isinstance(argument, Literal):
			return argument.kind
		spec = lookup(argument.node.name)
		if spec is None or spec.returns is None:
			return ValueKind.ANY
		return spec.returns

	def _check_slot(self, block: BlockNode, expected: ValueKind, argument: Argument) -> None:
		actual = self._kind_of(argument)
		if expected == ValueKind.ANY or actual == ValueKind.ANY:
			return
		if expected == ValueKind.NUMBER:
			self._check_number_slot(block, argument, actual)
		elif expected == ValueKind.STRING:
			if actual == ValueKind.BOOLEAN:
				self._report(ErrorCode.STRING_REQUIRED, f"'{block.name}' expects text, not a true/false value", argument, 'Put the text in quotes, e.g. "hello"')
		elif expected == ValueKind.BOOLEAN:
			self._check_boolean_slot(block, argument, actual)

	def _check_number_slot(self, block: BlockNode, argument: Argument, actual: ValueKind) -> None:
		if actual == ValueKind.BOOLEAN:
			self._report(ErrorCode.TYPE_MISMATCH, f"'{block.name}' expects a number, not a true/false value", argument, "Use a number or a reporter such as (x position)")
		elif isinstance(argument, Literal) and actual == ValueKind.STRING:
			if not _is_numeric(str(argument.value)):
				self._report(ErrorCode.NUMBER_REQUIRED, f"'{block.name}' expects a number but got \"{argument.value}\"", argument, "Remove the quotes and use a number, e.g. 10")
		elif isinstance(argument, Reporter) and actual == ValueKind.STRING:
			self._report(ErrorCode.NUMBER_REQUIRED, f"'{block.name}' expects a number but '{argument.node.name}' reports text", argument, "Use a reporter that gives a number")

	def _check_boolean_slot(self, block: BlockNode, argument: Argument, actual: ValueKind) -> None:
		if actual == ValueKind.BOOLEAN:
			return
		if isinstance(argument, Literal):
			if block.name in LOGIC_OPERATORS:
				self._report(
					ErrorCode.INVALID_BOOLEAN_OPERATION,
					f"'{block.name}' combines conditions, but got the {_kind_name(actual)} {argument.value!r}",
					argument,
					"Use comparisons like <(score) > (10)> on both sides",
				)
			else:
				self._report(
					ErrorCode.BOOLEAN_REQUIRED,
					f"'{block.name}' needs a condition, not the {_kind_name(actual)} {argument.value!r}",
					argument,
					"Use a condition such as <touching edge> or <(score) > (10)>",
				)
			return
		self._report(
			ErrorCode.INVALID_BOOLEAN_OPERATION,
			f"'{block.name}' needs a condition but '{argument.node.name}' reports a {_kind_name(actual)}",
			argument,
			"Compare the value instead, e.g. <(x position) > (0)>",
		)


def check(program: Program, globals_: Optional[Globals] = None) -> List[CompilerDiagnostic]:
	"""Return every semantic problem found in ``program`` without modifying it."""
	return SemanticChecker(program, globals_).check()
