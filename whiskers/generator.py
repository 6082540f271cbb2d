"""JavaScript code generation for parsed sprites.

The emitted program is the runtime template followed by one ``registerSpriteN``
function per sprite and a ``buildProgram(host)`` bootstrap that wires them to a
fresh runtime. Scripts become ``async function (rt, self, task)`` handlers;
every block that can suspend is emitted behind an ``await``.
"""

from __future__ import annotations

import html
import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Set

from .config import CompilerOptions
from .grammar import MATH_FUNCTIONS, ValueKind, lookup
from .nodes import Argument, BlockNode, Literal, Procedure, Program, Reporter, Script, SpriteUnit


logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
INDENT = "  "
YIELDING_LOOPS = ("forever", "repeatUntil")


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
	return (TEMPLATE_DIR / name).read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Block templates
#
# Positional placeholders are the compiled inputs in slot order; named ones
# are menu fields quoted as JS strings.


HATS: Dict[str, str] = {
	"whenFlagClicked": "rt.whenFlagClicked(sprite, ",
	"whenKeyPressed": "rt.whenKeyPressed(sprite, {KEY}, ",
	"whenThisSpriteClicked": "rt.whenSpriteClicked(sprite, ",
	"whenIReceive": "rt.whenIReceive(sprite, {OPTION}, ",
	"whenIStartAsClone": "rt.whenCloneStarts(sprite, ",
}

STATEMENTS: Dict[str, str] = {
	# events
	"broadcast": "rt.broadcast({0});",
	"broadcastAndWait": "await rt.broadcastAndWait(task, {0});",
	# motion
	"move": "self.move({0});",
	"turnRight": "self.turnRight({0});",
	"turnLeft": "self.turnLeft({0});",
	"goToXY": "self.goToXY({0}, {1});",
	"goTo": "self.goTo({OPTION});",
	"glideToXY": "await self.glideToXY(task, {0}, {1}, {2});",
	"glideTo": "await self.glideTo(task, {0}, {OPTION});",
	"pointInDirection": "self.pointInDirection({0});",
	"pointTowards": "self.pointTowards({OPTION});",
	"changeX": "self.changeXBy({0});",
	"setX": "self.setX({0});",
	"changeY": "self.changeYBy({0});",
	"setY": "self.setY({0});",
	"ifOnEdgeBounce": "self.ifOnEdgeBounce();",
	"setRotationStyle": "self.rotationStyle = {OPTION};",
	# looks
	"sayFor": "self.sayFor({0}, {1});",
	"say": "self.say({0});",
	"thinkFor": "self.thinkFor({0}, {1});",
	"think": "self.think({0});",
	"show": "self.show();",
	"hide": "self.hide();",
	"switchCostume": "self.switchCostume({0});",
	"nextCostume": "self.nextCostume();",
	"switchBackdrop": "rt.switchBackdrop({0});",
	"nextBackdrop": "rt.nextBackdrop();",
	"changeSize": "self.changeSize({0});",
	"setSize": "self.setSize({0});",
	"changeEffect": "self.changeEffect({OPTION}, {0});",
	"setEffect": "self.setEffect({OPTION}, {0});",
	"clearEffects": "self.clearEffects();",
	"goToFront": "rt.goToFront(self);",
	"goToBack": "rt.goToBack(self);",
	"goForwardLayers": "rt.moveLayers(self, {0});",
	"goBackwardLayers": "rt.moveLayers(self, -rt.num({0}));",
	# sound
	"playSound": "self.playSound({0});",
	"stopAllSounds": "rt.stopAllSounds();",
	"changeVolume": "self.changeVolume({0});",
	"setVolume": "self.setVolume({0});",
	# control
	"wait": "await rt.wait(task, {0});",
	"waitUntil": "await rt.waitUntil(task, () => rt.bool({0}));",
	"stopAll": "rt.stopAll();\nthrow rt.STOP;",
	"stopThisScript": "throw rt.STOP;",
	"stopOtherScripts": "rt.stopOtherScripts(self, task);",
	"createClone": "rt.createClone(self, {OPTION});",
	"deleteThisClone": "rt.deleteClone(self);\nthrow rt.STOP;",
	# sensing
	"askAndWait": "await rt.ask(task, self, {0});",
	"resetTimer": "rt.resetTimer();",
	"setDragMode": "self.draggable = {OPTION} === \"draggable\";",
	# variables
	"setVariable": "rt.setVar(self, {VARIABLE}, {0});",
	"changeVariable": "rt.changeVar(self, {VARIABLE}, {0});",
	"showVariable": "rt.showVariable(self, {VARIABLE}, true);",
	"hideVariable": "rt.showVariable(self, {VARIABLE}, false);",
	"addToList": "rt.addToList(self, {LIST}, {0});",
	"deleteAllOfList": "rt.deleteAllOfList(self, {LIST});",
	"deleteOfList": "rt.deleteOfList(self, {LIST}, {0});",
	"insertAtList": "rt.insertAtList(self, {LIST}, {0}, {1});",
	"replaceItemOfList": "rt.replaceItemOfList(self, {LIST}, {0}, {1});",
	"showList": "rt.showList(self, {LIST}, true);",
	"hideList": "rt.showList(self, {LIST}, false);",
	# pen
	"penDown": "self.penDown();",
	"penUp": "self.penUp();",
	"setPenColor": "self.setPenColor({0});",
	"changePenSize": "self.changePenSize({0});",
	"setPenSize": "self.setPenSize({0});",
	"stamp": "self.stamp();",
	"eraseAll": "rt.eraseAll();",
}

REPORTERS: Dict[str, str] = {
	"xPosition": "self.x",
	"yPosition": "self.y",
	"direction": "self.direction",
	"costumeNumber": "self.costumeNumber()",
	"costumeName": "self.costumeName()",
	"backdropNumber": "rt.stage.costumeNumber()",
	"backdropName": "rt.stage.costumeName()",
	"size": "self.size",
	"volume": "self.volume",
	"touchingColor": "self.touchingColor({0})",
	"touching": "self.touching({OPTION})",
	"keyPressed": "rt.isKeyPressed({KEY})",
	"mouseDown": "rt.mouse.down",
	"mouseX": "rt.mouse.x",
	"mouseY": "rt.mouse.y",
	"timer": "rt.timer()",
	"answer": "rt.answer",
	"distanceTo": "self.distanceTo({OPTION})",
	"username": "rt.username",
	"pickRandom": "rt.random({0}, {1})",
	"join": "rt.join({0}, {1})",
	"letterOf": "rt.letterOf({0}, {1})",
	"lengthOf": "rt.lengthOf({0})",
	"round": "Math.round(rt.num({0}))",
	"add": "(rt.num({0}) + rt.num({1}))",
	"subtract": "(rt.num({0}) - rt.num({1}))",
	"multiply": "(rt.num({0}) * rt.num({1}))",
	"divide": "(rt.num({0}) / rt.num({1}))",
	"mod": "rt.mod({0}, {1})",
	"negate": "(-rt.num({0}))",
	"lt": "(rt.compare({0}, {1}) < 0)",
	"gt": "(rt.compare({0}, {1}) > 0)",
	"equals": "(rt.compare({0}, {1}) === 0)",
	"notEquals": "(rt.compare({0}, {1}) !== 0)",
	"lte": "(rt.compare({0}, {1}) <= 0)",
	"gte": "(rt.compare({0}, {1}) >= 0)",
	"contains": "rt.contains({0}, {1})",
	"and": "(rt.bool({0}) && rt.bool({1}))",
	"or": "(rt.bool({0}) || rt.bool({1}))",
	"not": "(!rt.bool({0}))",
	"itemNumberOfList": "rt.itemNumberOfList(self, {LIST}, {0})",
	"itemOfList": "rt.itemOfList(self, {LIST}, {0})",
	"variable": "rt.getVar(self, {VARIABLE})",
	"listContents": "rt.list(self, {LIST})",
}
REPORTERS.update({fn: f'rt.mathop("{fn}", {{0}})' for fn in sorted(MATH_FUNCTIONS)})


# ---------------------------------------------------------------------------
# Helpers


def js_string(text: str) -> str:
	return json.dumps(text, ensure_ascii=False)


def js_number(value: float) -> str:
	if value != value or value in (float("inf"), float("-inf")):
		return "0"
	if float(value).is_integer() and abs(value) < 1e15:
		return str(int(value))
	return repr(float(value))


def _plain(value):
	"""Turn declaration values into JSON-friendly data with integral floats as ints."""
	if isinstance(value, bool) or isinstance(value, str):
		return value
	if isinstance(value, (int, float)):
		return int(value) if float(value).is_integer() and abs(value) < 1e15 else float(value)
	if isinstance(value, list):
		return [_plain(item) for item in value]
	return value


def block_suspends(block: BlockNode, suspending: Set[str], loop_yield: bool) -> bool:
	for node in block.walk():
		spec = lookup(node.name)
		if spec is not None and spec.suspends:
			return True
		if loop_yield and node.name in YIELDING_LOOPS:
			return True
		if node.name == "call" and node.fields.get("NAME") in suspending:
			return True
	return False


def suspending_procedures(program: Program, loop_yield: bool = True) -> Set[str]:
	"""Names of custom blocks that may suspend, directly or through calls."""
	suspending: Set[str] = set()
	changed = True
	while changed:
		changed = False
		for procedure in program.procedures:
			if procedure.name in suspending:
				continue
			if any(block_suspends(block, suspending, loop_yield) for block in procedure.body):
				suspending.add(procedure.name)
				changed = True
	return suspending


def escape_for_script_tag(program: str) -> str:
	return program.replace("</", "<\\/").replace("<!--", "<\\!--")


def render_preview(program: str, options: Optional[CompilerOptions] = None) -> str:
	options = options or CompilerOptions()
	page = load_template("preview.html")
	page = page.replace("{{TITLE}}", html.escape(options.preview_title))
	page = page.replace("{{WIDTH}}", str(options.stage_width))
	page = page.replace("{{HEIGHT}}", str(options.stage_height))
	return page.replace("{{PROGRAM}}", escape_for_script_tag(program))


# ---------------------------------------------------------------------------
# Generator


@dataclass
class GeneratedProgram:
	program: str
	preview: str


class CodeGenerator:
	def __init__(self, sprites: List[SpriteUnit], options: Optional[CompilerOptions] = None) -> None:
		self.sprites = sprites
		self.options = options or CompilerOptions()
		self._lines: List[str] = []
		self._depth = 0
		self._loop_depth = 0
		self._program: Program = Program()
		self._params: List[str] = []
		self._suspending: Set[str] = set()

	def generate(self) -> GeneratedProgram:
		self._lines = ["// Generated by whiskers. Do not edit.", load_template("runtime.js").rstrip("\n"), ""]
		for index, unit in enumerate(self.sprites, start=1):
			self._sprite(index, unit)
		self._bootstrap()
		program = "\n".join(self._lines) + "\n"
		logger.debug("generated %d characters for %d sprite(s)", len(program), len(self.sprites))
		return GeneratedProgram(program=program, preview=render_preview(program, self.options))

	# -----------------------------------------------------------------------
	# Emission

	def _line(self, text: str = "") -> None:
		self._lines.append(INDENT * self._depth + text if text else "")

	def _open(self, text: str) -> None:
		self._line(text)
		self._depth += 1

	def _close(self, text: str = "}") -> None:
		self._depth -= 1
		self._line(text)

	# -----------------------------------------------------------------------
	# Sprites, scripts and procedures

	def _sprite(self, index: int, unit: SpriteUnit) -> None:
		self._program = unit.program
		self._suspending = suspending_procedures(unit.program, self.options.loop_yield)
		state = {
			"costumes": list(unit.costumes),
			"sounds": list(unit.sounds),
			"variables": {name: _plain(value) for name, value in unit.program.variables.items()},
			"lists": {name: _plain(list(items)) for name, items in unit.program.lists.items()},
		}
		define = "defineStage" if unit.is_stage else "defineSprite"
		self._line(f"// {'Stage' if unit.is_stage else 'Sprite'} {js_string(unit.name)}")
		self._open(f"function registerSprite{index}(rt) {{")
		self._line(f"const sprite = rt.{define}({js_string(unit.name)}, {json.dumps(state, ensure_ascii=False)});")
		for procedure in unit.program.procedures:
			self._procedure(procedure)
		for script in unit.program.scripts:
			self._script(script)
		self._close()
		self._line()

	def _procedure(self, procedure: Procedure) -> None:
		keyword = "async function" if procedure.name in self._suspending else "function"
		self._params = list(procedure.params)
		self._open(f"sprite.defineProcedure({js_string(procedure.name)}, {keyword} (rt, self, task, args) {{")
		self._statements(procedure.body)
		self._close("});")
		self._params = []

	def _script(self, script: Script) -> None:
		template = HATS.get(script.trigger.name)
		if template is None:
			logger.warning("skipping script with unsupported trigger %s", script.trigger.name)
			return
		self._params = []
		self._open(self._format(template, script.trigger) + "async function (rt, self, task) {")
		self._statements(script.body)
		self._close("});")

	def _bootstrap(self) -> None:
		self._open("function buildProgram(host) {")
		self._line("const rt = createRuntime(host);")
		for index in range(1, len(self.sprites) + 1):
			self._line(f"registerSprite{index}(rt);")
		self._line("return rt;")
		self._close()
		self._line()
		self._open('if (typeof module !== "undefined" && module.exports) {')
		self._line("module.exports = { createRuntime: createRuntime, buildProgram: buildProgram };")
		self._close()

	# -----------------------------------------------------------------------
	# Statements

	def _statements(self, blocks: List[BlockNode]) -> None:
		for block in blocks:
			self._statement(block)

	def _statement(self, block: BlockNode) -> None:
		name = block.name
		if name == "repeat":
			self._repeat(block)
		elif name == "forever":
			self._open("while (true) {")
			self._loop_body(block.body)
			self._close()
		elif name == "repeatUntil":
			self._open(f"while (!rt.bool({self._argument(block, 0)})) {{")
			self._loop_body(block.body)
			self._close()
		elif name in ("if", "ifElse"):
			self._open(f"if (rt.bool({self._argument(block, 0)})) {{")
			self._statements(block.body)
			if name == "ifElse":
				self._depth -= 1
				self._open("} else {")
				self._statements(block.else_body)
			self._close()
		elif name == "call":
			self._call(block)
		elif name in STATEMENTS:
			for line in self._format(STATEMENTS[name], block).split("\n"):
				self._line(line)
		else:
			logger.warning("no code template for block %s at line %d", name, block.line)

	def _repeat(self, block: BlockNode) -> None:
		self._loop_depth += 1
		counter = f"i{self._loop_depth}"
		limit = f"n{self._loop_depth}"
		self._open(f"for (let {counter} = 0, {limit} = Math.round(rt.num({self._argument(block, 0)})); {counter} < {limit}; {counter}++) {{")
		self._statements(block.body)
		self._close()
		self._loop_depth -= 1

	def _loop_body(self, body: List[BlockNode]) -> None:
		self._statements(body)
		if self.options.loop_yield:
			self._line("await rt.frame(task);")

	def _call(self, block: BlockNode) -> None:
		name = block.fields.get("NAME", "")
		procedure = self._program.procedure(name)
		if procedure is None:
			self._line(f"// unknown custom block {js_string(name)} skipped")
			return
		args = ", ".join(self._expression(argument) for argument in block.arguments)
		call = f"self.call({js_string(name)}, task, [{args}]);"
		self._line(f"await {call}" if name in self._suspending else call)

	# -----------------------------------------------------------------------
	# Expressions

	def _format(self, template: str, block: BlockNode) -> str:
		inputs = [self._expression(argument) for argument in block.arguments]
		fields = {key: js_string(value) for key, value in block.fields.items()}
		return template.format(*inputs, **fields)

	def _argument(self, block: BlockNode, index: int) -> str:
		if index < len(block.arguments):
			return self._expression(block.arguments[index])
		return "false"

	def _expression(self, argument: Argument) -> str:
		if isinstance(argument, Literal):
			return self._literal(argument)
		return self._reporter(argument)

	def _literal(self, literal: Literal) -> str:
		if literal.kind == ValueKind.BOOLEAN:
			return "true" if literal.value else "false"
		if literal.kind == ValueKind.NUMBER and not isinstance(literal.value, str):
			return js_number(float(literal.value))
		return js_string(str(literal.value))

	def _reporter(self, reporter: Reporter) -> str:
		node = reporter.node
		if node.name == "argument":
			param = node.fields.get("NAME", "")
			if param in self._params:
				return f"args[{self._params.index(param)}]"
			return '""'
		template = REPORTERS.get(node.name)
		if template is None:
			logger.warning("no code template for reporter %s at line %d", node.name, node.line)
			return "0"
		return self._format(template, node)


def generate(sprites: List[SpriteUnit], options: Optional[CompilerOptions] = None) -> GeneratedProgram:
	"""Emit the program text and preview page for ``sprites`` in the given order."""
	return CodeGenerator(sprites, options).generate()
