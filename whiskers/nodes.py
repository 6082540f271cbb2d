"""Abstract syntax tree produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from .grammar import Category, ValueKind


@dataclass
class Literal:
	value: Union[float, str, bool]
	kind: ValueKind
	line: int = 0
	column: int = 0


@dataclass
class Reporter:
	node: "BlockNode"

	@property
	def line(self) -> int:
		return self.node.line

	@property
	def column(self) -> int:
		return self.node.column


Argument = Union[Literal, Reporter]


@dataclass
class BlockNode:
	category: Category
	name: str
	arguments: List[Argument] = field(default_factory=list)
	fields: Dict[str, str] = field(default_factory=dict)
	body: List["BlockNode"] = field(default_factory=list)
	else_body: List["BlockNode"] = field(default_factory=list)
	line: int = 0
	column: int = 0

	def walk(self) -> Iterator["BlockNode"]:
		"""Yield this node and every nested reporter and statement, depth first."""
		yield self
		for argument in self.arguments:
			if isinstance(argument, Reporter):
				yield from argument.node.walk()
		for child in self.body:
			yield from child.walk()
		for child in self.else_body:
			yield from child.walk()


@dataclass
class Script:
	trigger: BlockNode
	body: List[BlockNode] = field(default_factory=list)


@dataclass
class Procedure:
	name: str
	params: List[str]
	body: List[BlockNode] = field(default_factory=list)
	line: int = 0
	column: int = 0


@dataclass
class Declaration:
	name: str
	is_list: bool
	line: int
	column: int


@dataclass
class Program:
	scripts: List[Script] = field(default_factory=list)
	procedures: List[Procedure] = field(default_factory=list)
	variables: Dict[str, Any] = field(default_factory=dict)
	lists: Dict[str, List[Any]] = field(default_factory=dict)
	declarations: List[Declaration] = field(default_factory=list)
	signatures: Dict[str, int] = field(default_factory=dict)

	def declaration(self, name: str, is_list: bool) -> Optional[Declaration]:
		for decl in self.declarations:
			if decl.name == name and decl.is_list == is_list:
				return decl
		return None

	def procedure(self, name: str) -> Optional[Procedure]:
		for proc in self.procedures:
			if proc.name == name:
				return proc
		return None


@dataclass
class SpriteUnit:
	name: str
	program: Program
	is_stage: bool = False
	costumes: List[str] = field(default_factory=list)
	sounds: List[str] = field(default_factory=list)
