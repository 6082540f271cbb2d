"""Recursive-descent parser turning tokens into a ``Program``.

Statements are read one logical line at a time. Each line is checked for bracket
problems first and then matched against the phrase patterns of the block catalogue;
indented lines following a control header become its body.
"""

from __future__ import annotations

import difflib
from typing import List, Optional, Set, Tuple

from .diagnostics import CompilerDiagnostic, DiagnosticEngine, ErrorCode, Severity
from .grammar import (
	BINARY_OPERATORS,
	HAT_INDEX,
	KNOWN_BLOCK_WORDS,
	MULTIWORD_OPTIONS,
	REPORTER_INDEX,
	STATEMENT_INDEX,
	TOP_LEVEL_KEYWORDS,
	BlockSpec,
	Category,
	ItemKind,
	Pattern,
	PatternItem,
	Shape,
	ValueKind,
	lookup,
)
from .lexer import Token, TokenKind
from .nodes import Argument, BlockNode, Declaration, Literal, Procedure, Program, Reporter, Script


WORD_KINDS = (TokenKind.IDENTIFIER, TokenKind.KEYWORD)
CLOSERS = (TokenKind.RPAREN, TokenKind.RBRACKET)

# not binds tighter than and/or, looser than comparisons
NOT_BINDING_POWER = 3
NEGATE_BINDING_POWER = 7


class ParseFailure(Exception):
	"""Abandons the statement being parsed; the parser reports it and resynchronizes."""

	def __init__(self, code: ErrorCode, message: str, token: Token, suggestion: Optional[str] = None, progress: Tuple[int, int] = (0, 0)) -> None:
		super().__init__(message)
		self.code = code
		self.message = message
		self.token = token
		self.suggestion = suggestion
		self.progress = progress


class LineCursor:
	"""Cursor over the tokens of one logical line; reading past the end yields the NEWLINE token."""

	def __init__(self, tokens: List[Token], eol: Token) -> None:
		self.tokens = list(tokens)
		self.eol = eol
		self.pos = 0

	def peek(self, offset: int = 0) -> Token:
		index = self.pos + offset
		if index < len(self.tokens):
			return self.tokens[index]
		return self.eol

	def advance(self) -> Token:
		token = self.peek()
		if self.pos < len(self.tokens):
			self.pos += 1
		return token

	def at_end(self) -> bool:
		return self.pos >= len(self.tokens)

	def split_negative(self) -> None:
		# `(x) -1` lexes as `(x)` `-1`; split the number back into minus and operand
		token = self.tokens[self.pos]
		minus = Token(TokenKind.OPERATOR, "-", token.line, token.column)
		number = Token(TokenKind.NUMBER, token.text[1:], token.line, token.column + 1)
		self.tokens[self.pos:self.pos + 1] = [minus, number]


def _token_matches(token: Token, item: PatternItem) -> bool:
	if token.kind in WORD_KINDS:
		return item.matches_word(token.text)
	if token.kind in (TokenKind.OPERATOR, TokenKind.COLON, TokenKind.COMMA):
		return token.text == item.text
	return False


def _is_operator(token: Token, *texts: str) -> bool:
	return token.kind == TokenKind.OPERATOR and token.text in texts


class Parser:
	def __init__(self, tokens: List[Token], diagnostics: Optional[DiagnosticEngine] = None) -> None:
		self.tokens = [t for t in tokens if t.kind != TokenKind.COMMENT]
		if not self.tokens or self.tokens[-1].kind != TokenKind.EOF:
			last = self.tokens[-1] if self.tokens else None
			self.tokens.append(Token(TokenKind.EOF, "", last.line if last else 1, last.column if last else 1))
		self.index = 0
		self.diagnostics = diagnostics or DiagnosticEngine()
		self.program = Program()
		self.list_names: Set[str] = set()
		self.procedure_names: Set[str] = set()
		self._params: List[str] = []

	def parse(self) -> Program:
		self._prescan()
		while not self._is_at_end():
			prev_index = self.index
			self._parse_top_level()
			if self.index == prev_index and not self._is_at_end():
				self.index += 1
		return self.program

	# -----------------------------------------------------------------------
	# Token helpers

	def _peek(self, offset: int = 0) -> Token:
		index = min(self.index + offset, len(self.tokens) - 1)
		return self.tokens[index]

	def _advance(self) -> Token:
		token = self.tokens[self.index]
		if not self._is_at_end():
			self.index += 1
		return token

	def _check(self, kind: TokenKind) -> bool:
		return self._peek().kind == kind

	def _is_at_end(self) -> bool:
		return self.tokens[self.index].kind == TokenKind.EOF

	def _skip_newlines(self) -> None:
		while self._check(TokenKind.NEWLINE):
			self._advance()

	def _take_line(self) -> Tuple[List[Token], Token]:
		tokens: List[Token] = []
		while self._peek().kind not in (TokenKind.NEWLINE, TokenKind.EOF, TokenKind.INDENT, TokenKind.DEDENT):
			tokens.append(self._advance())
		eol = self._peek()
		if eol.kind == TokenKind.NEWLINE:
			self._advance()
		return tokens, eol

	def _at_indent(self) -> bool:
		self._skip_newlines()
		return self._check(TokenKind.INDENT)

	def _report(self, code: ErrorCode, message: str, token: Token, suggestion: Optional[str] = None, severity: Severity = Severity.ERROR) -> CompilerDiagnostic:
		return self.diagnostics.report(code, message, token.line, token.column, suggestion, severity)

	def _report_failure(self, failure: ParseFailure) -> None:
		self._report(failure.code, failure.message, failure.token, failure.suggestion)

	# -----------------------------------------------------------------------
	# Pre-scan

	def _prescan(self) -> None:
		"""Collect list names and procedure signatures so uses may precede definitions."""
		line: List[Token] = []
		for token in self.tokens:
			if token.kind in (TokenKind.INDENT, TokenKind.DEDENT):
				continue
			if token.kind in (TokenKind.NEWLINE, TokenKind.EOF):
				self._prescan_line(line)
				line = []
				continue
			line.append(token)

	def _prescan_line(self, line: List[Token]) -> None:
		if len(line) < 2:
			return
		head = line[0]
		if head.is_word("list") and line[1].kind == TokenKind.IDENTIFIER:
			self.list_names.add(line[1].text)
		elif head.is_word("define"):
			try:
				name, params = self._read_signature(LineCursor(line[1:], line[-1]), head)
			except ParseFailure:
				return
			self.procedure_names.add(name.text)
			self.program.signatures.setdefault(name.text, len(params))

	# -----------------------------------------------------------------------
	# Top level

	def _parse_top_level(self) -> None:
		token = self._peek()
		if token.kind in (TokenKind.NEWLINE, TokenKind.DEDENT):
			self._advance()
			return
		if token.kind == TokenKind.INDENT:
			self._report(ErrorCode.UNEXPECTED_TOKEN, "Unexpected indentation", token, "Only blocks inside a 'when' script or 'define' are indented")
			self._discard_body(token)
			return
		if token.is_word("when"):
			self._parse_script()
			return
		if token.is_word("define"):
			self._parse_procedure()
			return
		if token.is_word("var", "variable", "list"):
			self._parse_declaration()
			return
		if token.is_word("end"):
			self._parse_end()
			return
		self._take_line()
		self._report(
			ErrorCode.UNEXPECTED_TOKEN,
			f"Unexpected {token} outside of a script",
			token,
			"Start a script with a trigger such as 'when flagClicked' and indent its blocks",
		)
		if self._at_indent():
			self._discard_body(token)

	def _parse_end(self) -> None:
		token = self._peek()
		tokens, _ = self._take_line()
		self._report(
			ErrorCode.INVALID_SYNTAX,
			"'end' is not needed; blocks close when the indentation goes back",
			token,
			"Remove the 'end' line",
			Severity.WARNING,
		)
		if len(tokens) > 1:
			self._report(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {tokens[1]} after 'end'", tokens[1])

	def _parse_script(self) -> None:
		when = self._peek()
		tokens, eol = self._take_line()
		try:
			self._precheck(tokens, eol)
			cursor = LineCursor(tokens, eol)
			trigger = self._match_line(HAT_INDEX["when"], cursor)
		except ParseFailure as failure:
			if failure.progress[0] <= 1:
				failure = ParseFailure(
					ErrorCode.UNKNOWN_BLOCK,
					f"Unknown event trigger '{' '.join(t.text for t in tokens)}'",
					when,
					"Try 'when flagClicked', 'when space key pressed', 'when this sprite clicked', 'when I receive \"message\"' or 'when I start as a clone'",
				)
			self._report_failure(failure)
			if self._at_indent():
				self._discard_body(when)
			return
		body = self._parse_body(when, "when")
		self.program.scripts.append(Script(trigger=trigger, body=body))

	def _parse_procedure(self) -> None:
		define = self._peek()
		tokens, eol = self._take_line()
		try:
			self._precheck(tokens, eol)
			name, params = self._read_signature(LineCursor(tokens[1:], eol), define)
		except ParseFailure as failure:
			self._report_failure(failure)
			if self._at_indent():
				self._discard_body(define)
			return
		duplicate = self.program.procedure(name.text) is not None
		if duplicate:
			self._report(ErrorCode.INVALID_SYNTAX, f"Custom block '{name.text}' is already defined", name, "Give each custom block a unique name")
		self._params = params
		try:
			body = self._parse_body(define, f"define {name.text}")
		finally:
			self._params = []
		if duplicate:
			return
		self.program.procedures.append(Procedure(name=name.text, params=params, body=body, line=define.line, column=define.column))
		self.program.signatures[name.text] = len(params)

	def _read_signature(self, cursor: LineCursor, define: Token) -> Tuple[Token, List[str]]:
		name = cursor.peek()
		if cursor.at_end():
			raise ParseFailure(ErrorCode.MISSING_VALUE, "'define' needs a block name", define, "Example: define jump (height)")
		if name.kind == TokenKind.KEYWORD:
			raise ParseFailure(ErrorCode.RESERVED_KEYWORD, f"'{name.text}' is a reserved keyword and cannot name a custom block", name, "Choose another name, e.g. 'my_" + name.text + "'")
		if name.kind != TokenKind.IDENTIFIER:
			raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected a custom block name but found {name}", name, "Example: define jump (height)")
		cursor.advance()
		params: List[str] = []
		depth = 0
		while not cursor.at_end():
			token = cursor.advance()
			if token.kind == TokenKind.LPAREN:
				depth += 1
			elif token.kind == TokenKind.RPAREN:
				depth -= 1
			elif token.kind == TokenKind.COMMA:
				continue
			elif token.kind == TokenKind.IDENTIFIER:
				if token.text in params:
					raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Parameter '{token.text}' is listed twice", token)
				params.append(token.text)
			elif token.kind == TokenKind.KEYWORD:
				raise ParseFailure(ErrorCode.RESERVED_KEYWORD, f"'{token.text}' is a reserved keyword and cannot name a parameter", token, "Choose another parameter name")
			else:
				raise ParseFailure(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {token} in custom block definition", token, "Parameters are written as names in parentheses: define jump (height) (times)")
		if depth != 0:
			raise ParseFailure(ErrorCode.INVALID_BRACKET, "Unbalanced parentheses in custom block definition", name)
		return name, params

	def _parse_declaration(self) -> None:
		keyword = self._peek()
		tokens, eol = self._take_line()
		is_list = keyword.is_word("list")
		try:
			self._precheck(tokens, eol)
			cursor = LineCursor(tokens[1:], eol)
			name = self._read_declared_name(cursor, keyword)
			if is_list:
				value = self._read_list_value(cursor)
			else:
				value = self._read_initial_value(cursor)
			if not cursor.at_end():
				raise ParseFailure(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {cursor.peek()} in declaration", cursor.peek())
		except ParseFailure as failure:
			self._report_failure(failure)
			return
		previous = self.program.declaration(name.text, is_list)
		if previous is not None:
			self._report(
				ErrorCode.INVALID_SYNTAX,
				f"'{name.text}' is already declared on line {previous.line}",
				name,
				"Remove the duplicate declaration",
				Severity.WARNING,
			)
		else:
			self.program.declarations.append(Declaration(name.text, is_list, name.line, name.column))
		if is_list:
			self.program.lists[name.text] = value
		else:
			self.program.variables[name.text] = value
		if self._at_indent():
			self._report(ErrorCode.UNEXPECTED_TOKEN, "Unexpected indentation after a declaration", self._peek())
			self._discard_body(keyword)

	def _read_declared_name(self, cursor: LineCursor, keyword: Token) -> Token:
		name = cursor.peek()
		if cursor.at_end():
			raise ParseFailure(ErrorCode.MISSING_VALUE, f"'{keyword.text}' needs a name", keyword, f"Example: {keyword.text} score = 0")
		if name.kind == TokenKind.KEYWORD:
			raise ParseFailure(
				ErrorCode.RESERVED_KEYWORD,
				f"'{name.text}' is a reserved keyword and cannot be used as a name",
				name,
				f"Choose another name, e.g. 'my_{name.text}'",
			)
		if name.kind != TokenKind.IDENTIFIER:
			raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected a name after '{keyword.text}' but found {name}", name)
		cursor.advance()
		return name

	def _read_initial_value(self, cursor: LineCursor):
		if cursor.at_end():
			return 0
		equals = cursor.advance()
		if not _is_operator(equals, "=", "=="):
			raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected '=' but found {equals}", equals, "Example: var score = 0")
		if cursor.at_end():
			raise ParseFailure(ErrorCode.MISSING_VALUE, "Missing initial value after '='", equals, "Example: var score = 0")
		return self._read_constant(cursor)

	def _read_list_value(self, cursor: LineCursor) -> list:
		if cursor.at_end():
			return []
		equals = cursor.advance()
		if not _is_operator(equals, "=", "=="):
			raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected '=' but found {equals}", equals, 'Example: list fruits = ["apple", "pear"]')
		opener = cursor.advance()
		if opener.kind != TokenKind.LBRACKET:
			raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected '[' but found {opener}", opener, 'Example: list fruits = ["apple", "pear"]')
		items: list = []
		while cursor.peek().kind != TokenKind.RBRACKET:
			if cursor.at_end():
				raise ParseFailure(ErrorCode.INVALID_BRACKET, "Missing ']' at the end of the list", opener)
			items.append(self._read_constant(cursor))
			if cursor.peek().kind == TokenKind.COMMA:
				cursor.advance()
		cursor.advance()
		return items

	def _read_constant(self, cursor: LineCursor):
		token = cursor.advance()
		if token.kind == TokenKind.NUMBER:
			return _number(token.text)
		if token.kind == TokenKind.STRING:
			return token.text
		if token.is_word("true", "false"):
			return token.text.lower() == "true"
		raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Initial values must be numbers, text or true/false, not {token}", token)

	# -----------------------------------------------------------------------
	# Bodies and statements

	def _parse_body(self, header: Token, label: str) -> List[BlockNode]:
		self._skip_newlines()
		if not self._check(TokenKind.INDENT):
			self._report(
				ErrorCode.MISSING_INDENT,
				f"'{label}' must be followed by an indented block",
				header,
				"Indent the blocks that belong inside it by 4 spaces",
			)
			return []
		self._advance()
		body: List[BlockNode] = []
		while True:
			self._skip_newlines()
			token = self._peek()
			if token.kind == TokenKind.DEDENT:
				self._advance()
				break
			if token.kind == TokenKind.EOF:
				self._report(
					ErrorCode.MISSING_END,
					f"'{label}' starting on line {header.line} is never closed",
					header,
					"Check that the block's indentation returns to the level of its header",
				)
				break
			prev_index = self.index
			node = self._parse_statement()
			if node is not None:
				body.append(node)
			if self.index == prev_index:
				self._advance()
		return body

	def _discard_body(self, header: Token) -> None:
		self._parse_body(header, header.text or "block")

	def _parse_statement(self) -> Optional[BlockNode]:
		first = self._peek()
		if first.kind == TokenKind.INDENT:
			self._report(ErrorCode.UNEXPECTED_TOKEN, "Unexpected indentation", first, "Line this block up with the block above it")
			self._discard_body(first)
			return None
		if first.is_word("end"):
			self._parse_end()
			return None
		if first.is_word(*TOP_LEVEL_KEYWORDS) or first.is_word("else"):
			self._take_line()
			if first.is_word("else"):
				self._report(ErrorCode.UNEXPECTED_TOKEN, "'else' without a matching 'if'", first, "Put 'else' at the same indentation as its 'if'")
			elif first.is_word("when", "define"):
				self._report(ErrorCode.UNEXPECTED_TOKEN, f"'{first.text}' cannot be nested inside another block", first, "Move it to the left margin")
			else:
				self._report(ErrorCode.UNEXPECTED_TOKEN, "Declarations belong at the top of the sprite", first, "Move the declaration to the left margin")
			if self._at_indent():
				self._discard_body(first)
			return None

		tokens, eol = self._take_line()
		try:
			self._precheck(tokens, eol)
			node = self._match_statement(tokens, eol)
		except ParseFailure as failure:
			self._report_failure(failure)
			if self._at_indent():
				self._discard_body(first)
			return None

		spec = lookup(node.name)
		if spec is not None and spec.shape == Shape.C:
			node.body = self._parse_body(first, first.text)
			if node.name == "if":
				self._parse_else(node)
		elif self._at_indent():
			self._report(ErrorCode.UNEXPECTED_TOKEN, "Unexpected indentation", self._peek(), f"'{first.text}' does not take an indented body")
			self._discard_body(first)
		return node

	def _parse_else(self, node: BlockNode) -> None:
		self._skip_newlines()
		token = self._peek()
		if not token.is_word("else"):
			return
		tokens, _ = self._take_line()
		if len(tokens) > 1:
			self._report(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {tokens[1]} after 'else'", tokens[1], "Put the blocks for 'else' on the following lines, indented")
		node.name = "ifElse"
		node.else_body = self._parse_body(token, "else")

	def _match_statement(self, tokens: List[Token], eol: Token) -> BlockNode:
		first = tokens[0]
		cursor = LineCursor(tokens, eol)
		if first.is_word("call"):
			cursor.advance()
			name = cursor.peek()
			if name.kind != TokenKind.IDENTIFIER:
				raise ParseFailure(ErrorCode.MISSING_VALUE, "'call' needs the name of a custom block", first)
			if name.text not in self.procedure_names:
				raise ParseFailure(ErrorCode.UNKNOWN_BLOCK, f"Unknown custom block '{name.text}'", name, self._suggest(name.text))
			return self._parse_call(cursor)
		if first.kind == TokenKind.IDENTIFIER and first.text in self.procedure_names:
			return self._parse_call(cursor)
		if first.kind not in WORD_KINDS:
			raise ParseFailure(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {first}; a line must start with a block name", first)
		candidates = STATEMENT_INDEX.get(first.text.lower())
		if not candidates:
			if first.text.lower() in REPORTER_INDEX:
				raise ParseFailure(
					ErrorCode.INVALID_SYNTAX,
					f"'{first.text}' reports a value and cannot be used as a block on its own",
					first,
					f"Use it inside another block, e.g. say ({first.text})",
				)
			raise ParseFailure(ErrorCode.UNKNOWN_BLOCK, f"Unknown block '{first.text}'", first, self._suggest(first.text))
		return self._match_line(candidates, cursor)

	def _suggest(self, word: str) -> Optional[str]:
		known = list(KNOWN_BLOCK_WORDS) + sorted(self.procedure_names)
		matches = difflib.get_close_matches(word, known, n=1, cutoff=0.6)
		if not matches:
			matches = difflib.get_close_matches(word.lower(), known, n=1, cutoff=0.6)
		if matches:
			return f"Did you mean '{matches[0]}'?"
		return None

	def _parse_call(self, cursor: LineCursor) -> BlockNode:
		name = cursor.advance()
		node = BlockNode(Category.CUSTOM, "call", fields={"NAME": name.text}, line=name.line, column=name.column)
		while not cursor.at_end():
			token = cursor.peek()
			if token.kind == TokenKind.COMMA:
				cursor.advance()
			elif token.kind == TokenKind.LPAREN:
				node.arguments.extend(self._parse_call_group(cursor))
			else:
				node.arguments.append(self._parse_value(cursor))
		return node

	def _parse_call_group(self, cursor: LineCursor) -> List[Argument]:
		opener = cursor.advance()
		arguments = [self._parse_expression(cursor)]
		while cursor.peek().kind == TokenKind.COMMA:
			cursor.advance()
			arguments.append(self._parse_expression(cursor))
		self._expect_closer(cursor, TokenKind.RPAREN, opener)
		return arguments

	# -----------------------------------------------------------------------
	# Line pre-check

	def _precheck(self, tokens: List[Token], eol: Token) -> None:
		"""Reject bracket problems on a line before its block is matched."""
		stack: List[Token] = []
		for i, token in enumerate(tokens):
			if token.kind in (TokenKind.LBRACE, TokenKind.RBRACE):
				raise ParseFailure(
					ErrorCode.INVALID_CURLY_BRACKET,
					f"Curly braces are not used in this language ({token})",
					token,
					"Group blocks by indenting them instead of using { }",
				)
			if token.kind in (TokenKind.LPAREN, TokenKind.LBRACKET):
				stack.append(token)
			elif token.kind in CLOSERS:
				expected = TokenKind.LPAREN if token.kind == TokenKind.RPAREN else TokenKind.LBRACKET
				if not stack or stack[-1].kind != expected:
					raise ParseFailure(ErrorCode.INVALID_BRACKET, f"Unmatched {token}", token, "Check that every bracket is opened and closed in order")
				opener = stack.pop()
				if token.kind == TokenKind.RPAREN and tokens[i - 1] is opener:
					raise ParseFailure(ErrorCode.EMPTY_PARENTHESES, "Empty parentheses: a value is missing", opener, "Put a number, text or reporter inside ( )")
				if token.kind == TokenKind.RBRACKET and tokens[i - 1] is opener and not (i >= 2 and _is_operator(tokens[i - 2], "=")):
					raise ParseFailure(ErrorCode.INVALID_BRACKET, "Empty brackets: a variable name is missing", opener, "Write the variable name inside [ ], e.g. [score]")
			elif _is_operator(token, "<") and i + 1 < len(tokens) and _is_operator(tokens[i + 1], ">"):
				raise ParseFailure(ErrorCode.INVALID_ANGLE_BRACKET, "Empty condition '<>'", token, "Put a condition inside < >, e.g. <touching edge>")
		if stack:
			opener = stack[-1]
			raise ParseFailure(ErrorCode.INVALID_BRACKET, f"Unclosed {opener}", opener, "Add the matching closing bracket")

	# -----------------------------------------------------------------------
	# Pattern matching

	def _match_line(self, candidates: List[Tuple[BlockSpec, Pattern]], cursor: LineCursor) -> BlockNode:
		start = cursor.pos
		best: Optional[ParseFailure] = None
		for spec, pattern in candidates:
			cursor.pos = start
			try:
				node = self._match_pattern(spec, pattern, cursor, 0)
			except ParseFailure as failure:
				if best is None or failure.progress > best.progress:
					best = failure
				continue
			if cursor.at_end():
				return node
			extra = cursor.peek()
			hint = f"Usage: {spec.usage}"
			if extra.kind == TokenKind.OPERATOR:
				hint = "Wrap calculations and comparisons in ( ) or < >, e.g. move (10 + 5)"
			failure = ParseFailure(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {extra} after '{spec.usage.split()[0]}' block", extra, hint, (cursor.pos, 2))
			if best is None or failure.progress > best.progress:
				best = failure
		if best is None:
			raise ParseFailure(ErrorCode.UNKNOWN_BLOCK, f"Unknown block {cursor.peek()}", cursor.peek())
		raise best

	def _match_pattern(self, spec: BlockSpec, pattern: Pattern, cursor: LineCursor, angle: int) -> BlockNode:
		head = cursor.peek()
		node = BlockNode(spec.category, spec.name, line=head.line, column=head.column)
		for position, item in enumerate(pattern):
			token = cursor.peek()
			if item.kind == ItemKind.WORD:
				if not _token_matches(token, item):
					raise ParseFailure(
						ErrorCode.INVALID_SYNTAX,
						f"Expected '{item.text}' but found {token}",
						token if not cursor.at_end() else head,
						f"Usage: {spec.usage}",
						(cursor.pos, 0),
					)
				cursor.advance()
			elif item.kind == ItemKind.OPTIONAL:
				if _token_matches(token, item):
					cursor.advance()
			elif item.kind == ItemKind.SLOT:
				upcoming = pattern[position + 1] if position + 1 < len(pattern) else None
				if cursor.at_end() or token.kind in CLOSERS or (upcoming is not None and upcoming.kind == ItemKind.WORD and _token_matches(token, upcoming)):
					what = "condition" if item.value_kind == ValueKind.BOOLEAN else "value"
					raise ParseFailure(
						ErrorCode.MISSING_VALUE,
						f"'{head.text}' is missing a {what}",
						token if not cursor.at_end() else head,
						f"Usage: {spec.usage}",
						(cursor.pos, 1),
					)
				if item.value_kind == ValueKind.BOOLEAN:
					# conditions may be written bare: if score > 10 then
					node.arguments.append(self._parse_expression(cursor, 0, angle))
				else:
					node.arguments.append(self._parse_value(cursor, angle))
			else:
				node.fields[item.field_name] = self._parse_field(cursor, item, spec, head)  # type: ignore[index]
		return node

	def _parse_field(self, cursor: LineCursor, item: PatternItem, spec: BlockSpec, head: Token) -> str:
		token = cursor.peek()
		if cursor.at_end() or token.kind in CLOSERS:
			raise ParseFailure(ErrorCode.MISSING_VALUE, f"'{head.text}' is missing a name", head, f"Usage: {spec.usage}", (cursor.pos, 1))
		if item.field_name in ("VARIABLE", "LIST"):
			return self._parse_name_reference(cursor).text
		if token.kind == TokenKind.STRING:
			cursor.advance()
			return token.text
		for option in MULTIWORD_OPTIONS:
			if all(cursor.peek(k).text.lower() == part and cursor.peek(k).kind != TokenKind.STRING for k, part in enumerate(option)):
				for _ in option:
					cursor.advance()
				return " ".join(option).replace(" - ", "-")
		if token.kind in WORD_KINDS or token.kind == TokenKind.NUMBER:
			cursor.advance()
			return token.text
		raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected a name or option but found {token}", token, f"Usage: {spec.usage}", (cursor.pos, 1))

	def _parse_name_reference(self, cursor: LineCursor) -> Token:
		token = cursor.peek()
		bracketed = token.kind == TokenKind.LBRACKET
		if bracketed:
			cursor.advance()
			token = cursor.peek()
		if token.kind == TokenKind.KEYWORD:
			raise ParseFailure(
				ErrorCode.RESERVED_KEYWORD,
				f"'{token.text}' is a reserved keyword and cannot be used as a variable name",
				token,
				"Rename the variable",
				(cursor.pos, 1),
			)
		if token.kind != TokenKind.IDENTIFIER:
			raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected a variable name but found {token}", token, "Write variables as [name]", (cursor.pos, 1))
		cursor.advance()
		if bracketed:
			closer = cursor.peek()
			if closer.kind != TokenKind.RBRACKET:
				raise ParseFailure(ErrorCode.INVALID_SYNTAX, f"Expected ']' but found {closer}", closer, "Variable names are a single word, e.g. [high_score]", (cursor.pos, 1))
			cursor.advance()
		return token

	# -----------------------------------------------------------------------
	# Values and expressions

	def _parse_value(self, cursor: LineCursor, angle: int = 0) -> Argument:
		token = cursor.peek()
		if token.kind == TokenKind.NUMBER:
			cursor.advance()
			return Literal(_number(token.text), ValueKind.NUMBER, token.line, token.column)
		if token.kind == TokenKind.STRING:
			cursor.advance()
			return Literal(token.text, ValueKind.STRING, token.line, token.column)
		if token.is_word("true", "false"):
			cursor.advance()
			return Literal(token.text.lower() == "true", ValueKind.BOOLEAN, token.line, token.column)
		if token.kind == TokenKind.LPAREN:
			cursor.advance()
			value = self._parse_expression(cursor)
			self._expect_closer(cursor, TokenKind.RPAREN, token)
			return value
		if _is_operator(token, "<"):
			cursor.advance()
			value = self._parse_expression(cursor, 0, angle + 1)
			closer = cursor.peek()
			if not _is_operator(closer, ">"):
				raise ParseFailure(ErrorCode.INVALID_ANGLE_BRACKET, "Missing '>' to close the condition", token, "Conditions are written as <...>", (cursor.pos, 1))
			cursor.advance()
			return value
		if token.kind == TokenKind.LBRACKET:
			name = self._parse_name_reference(cursor)
			return Reporter(self._reference(name))
		if _is_operator(token, "-"):
			cursor.advance()
			operand = self._parse_value(cursor, angle)
			return _negate(operand, token)
		if token.kind in WORD_KINDS:
			candidates = REPORTER_INDEX.get(token.text.lower())
			if candidates:
				start = cursor.pos
				best: Optional[ParseFailure] = None
				for spec, pattern in candidates:
					cursor.pos = start
					try:
						return Reporter(self._match_pattern(spec, pattern, cursor, angle))
					except ParseFailure as failure:
						if best is None or failure.progress > best.progress:
							best = failure
				cursor.pos = start
				if token.kind != TokenKind.IDENTIFIER and best is not None:
					raise best
			if token.kind == TokenKind.IDENTIFIER:
				cursor.advance()
				return Reporter(self._reference(token))
			raise ParseFailure(
				ErrorCode.RESERVED_KEYWORD,
				f"'{token.text}' is a reserved keyword, not a value",
				token,
				"Put text in quotes, e.g. \"" + token.text + "\"",
				(cursor.pos, 1),
			)
		if cursor.at_end() or token.kind in CLOSERS:
			raise ParseFailure(ErrorCode.MISSING_VALUE, "A value is missing", token, "Put a number, text or reporter here", (cursor.pos, 1))
		raise ParseFailure(ErrorCode.UNEXPECTED_TOKEN, f"Unexpected {token} where a value was expected", token, None, (cursor.pos, 1))

	def _reference(self, name: Token) -> BlockNode:
		if name.text in self._params:
			return BlockNode(Category.CUSTOM, "argument", fields={"NAME": name.text}, line=name.line, column=name.column)
		if name.text in self.list_names and self.program.declaration(name.text, False) is None:
			return BlockNode(Category.VARIABLES, "listContents", fields={"LIST": name.text}, line=name.line, column=name.column)
		return BlockNode(Category.VARIABLES, "variable", fields={"VARIABLE": name.text}, line=name.line, column=name.column)

	def _expect_closer(self, cursor: LineCursor, kind: TokenKind, opener: Token) -> None:
		token = cursor.peek()
		if token.kind != kind:
			raise ParseFailure(
				ErrorCode.UNEXPECTED_TOKEN,
				f"Unexpected {token} inside {opener}...",
				token if not cursor.at_end() else opener,
				"Close the expression with ')'" if kind == TokenKind.RPAREN else "Close with ']'",
				(cursor.pos, 1),
			)
		cursor.advance()

	def _parse_expression(self, cursor: LineCursor, min_power: int = 0, angle: int = 0) -> Argument:
		left = self._parse_unary(cursor, angle)
		while True:
			token = cursor.peek()
			if token.kind == TokenKind.NUMBER and token.text.startswith("-"):
				if BINARY_OPERATORS["-"][1] <= min_power:
					break
				cursor.split_negative()
				token = cursor.peek()
			operator = self._binary_operator(cursor, angle)
			if operator is None:
				break
			name, power = operator
			if power <= min_power:
				break
			cursor.advance()
			right = self._parse_expression(cursor, power, angle)
			left = Reporter(BlockNode(Category.OPERATORS, name, [left, right], line=token.line, column=token.column))
		return left

	def _parse_unary(self, cursor: LineCursor, angle: int) -> Argument:
		token = cursor.peek()
		if token.is_word("not") or _is_operator(token, "!"):
			cursor.advance()
			operand = self._parse_expression(cursor, NOT_BINDING_POWER, angle)
			return Reporter(BlockNode(Category.OPERATORS, "not", [operand], line=token.line, column=token.column))
		if _is_operator(token, "-"):
			cursor.advance()
			operand = self._parse_expression(cursor, NEGATE_BINDING_POWER, angle)
			return _negate(operand, token)
		return self._parse_value(cursor, angle)

	def _binary_operator(self, cursor: LineCursor, angle: int) -> Optional[Tuple[str, int]]:
		token = cursor.peek()
		if token.kind == TokenKind.OPERATOR:
			key = token.text
		elif token.is_word("and", "or", "mod", "contains"):
			key = token.text.lower()
		else:
			return None
		if key not in BINARY_OPERATORS:
			return None
		if key == ">" and angle > 0 and not self._starts_operand(cursor.peek(1)):
			# closes the surrounding <...> condition
			return None
		return BINARY_OPERATORS[key]

	def _starts_operand(self, token: Token) -> bool:
		if token.kind in (TokenKind.NUMBER, TokenKind.STRING, TokenKind.LPAREN, TokenKind.LBRACKET, TokenKind.IDENTIFIER):
			return True
		if _is_operator(token, "<", "-", "!"):
			return True
		if token.kind == TokenKind.KEYWORD:
			return token.is_word("true", "false", "not") or token.text.lower() in REPORTER_INDEX
		return False


def _number(text: str) -> float:
	return float(text)


def _negate(operand: Argument, token: Token) -> Argument:
	if isinstance(operand, Literal) and operand.kind == ValueKind.NUMBER:
		return Literal(-operand.value, ValueKind.NUMBER, token.line, token.column)  # type: ignore[operator]
	return Reporter(BlockNode(Category.OPERATORS, "negate", [operand], line=token.line, column=token.column))


def parse(tokens: List[Token], diagnostics: Optional[DiagnosticEngine] = None) -> Program:
	"""Parse a token list; problems are reported to ``diagnostics`` and parsing continues."""
	return Parser(tokens, diagnostics).parse()
