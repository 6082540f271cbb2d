"""Keyword, operator and block tables shared by the parser, checker and generator.

Every block of the language is described once by a ``BlockSpec``. A spec owns one or
more phrase patterns; pattern items are plain words (``move``), optional words
(``?steps``), value slots (``%n`` number, ``%s`` string, ``%b`` boolean, ``%a`` any)
and menu fields (``%v`` variable, ``%l`` list, ``%k`` key, ``%m`` option).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, FrozenSet, List, Optional, Tuple


class Category(Enum):
	EVENT = "event"
	MOTION = "motion"
	LOOKS = "looks"
	SOUND = "sound"
	CONTROL = "control"
	SENSING = "sensing"
	OPERATORS = "operators"
	VARIABLES = "variables"
	CUSTOM = "custom"
	PEN = "pen"


class ValueKind(Enum):
	NUMBER = auto()
	STRING = auto()
	BOOLEAN = auto()
	ANY = auto()


class Shape(Enum):
	HAT = auto()
	STACK = auto()
	C = auto()
	CAP = auto()
	REPORTER = auto()


KEYWORDS: FrozenSet[str] = frozenset(
	{
		# events
		"when", "flag", "clicked", "broadcast", "receive", "I", "start", "as", "a", "clone", "myself",
		# control
		"forever", "if", "else", "then", "repeat", "until", "while", "end", "wait", "stop", "all",
		"this", "script", "create", "delete", "of",
		# motion
		"move", "steps", "turn", "degrees", "goto", "glide", "point", "direction", "x", "y",
		# looks
		"say", "for", "seconds", "think", "show", "hide", "switch", "costume", "backdrop", "next",
		"change", "set", "color", "effect", "size", "clear", "graphic", "effects",
		# sound
		"play", "sound",
		# sensing
		"ask", "answer", "touching", "edge", "sprite", "key", "pressed", "mouse", "down", "reset",
		"timer", "random",
		# variables and lists
		"var", "variable", "list", "to", "by",
		# operators
		"and", "or", "not", "join", "letter", "mod", "round", "abs", "floor", "ceiling", "sqrt",
		"sin", "cos", "tan", "asin", "acos", "atan", "ln", "log", "contains",
		# pen
		"pen", "up", "stamp",
		# custom blocks
		"define", "call",
		# literals
		"true", "false",
	}
)

# Keywords that start a top-level construct; the parser resynchronizes on them.
TOP_LEVEL_KEYWORDS: FrozenSet[str] = frozenset({"when", "define", "var", "variable", "list"})

OPERATORS: FrozenSet[str] = frozenset({"+", "-", "*", "/", "%", "=", "<", ">", "!", "&", "|"})
TWO_CHAR_OPERATORS: FrozenSet[str] = frozenset({"==", "!=", ">=", "<="})

# infix operator -> (block name, binding power)
BINARY_OPERATORS: Dict[str, Tuple[str, int]] = {
	"or": ("or", 1),
	"|": ("or", 1),
	"and": ("and", 2),
	"&": ("and", 2),
	"<": ("lt", 4),
	">": ("gt", 4),
	"=": ("equals", 4),
	"==": ("equals", 4),
	"!=": ("notEquals", 4),
	"<=": ("lte", 4),
	">=": ("gte", 4),
	"contains": ("contains", 4),
	"+": ("add", 5),
	"-": ("subtract", 5),
	"*": ("multiply", 6),
	"/": ("divide", 6),
	"%": ("mod", 6),
	"mod": ("mod", 6),
}

SLOT_KINDS: Dict[str, ValueKind] = {
	"%n": ValueKind.NUMBER,
	"%s": ValueKind.STRING,
	"%b": ValueKind.BOOLEAN,
	"%a": ValueKind.ANY,
}

FIELD_NAMES: Dict[str, str] = {
	"%v": "VARIABLE",
	"%l": "LIST",
	"%k": "KEY",
	"%m": "OPTION",
}

# Menu options spelled with more than one token.
MULTIWORD_OPTIONS: Tuple[Tuple[str, ...], ...] = (
	("mouse", "-", "pointer"),
	("random", "position"),
	("up", "arrow"),
	("down", "arrow"),
	("left", "arrow"),
	("right", "arrow"),
	("all", "around"),
	("left", "-", "right"),
	("fish", "eye"),
)

MATH_FUNCTIONS: FrozenSet[str] = frozenset(
	{"abs", "floor", "ceiling", "sqrt", "sin", "cos", "tan", "asin", "acos", "atan", "ln", "log"}
)


class ItemKind(Enum):
	WORD = auto()
	OPTIONAL = auto()
	SLOT = auto()
	FIELD = auto()


@dataclass(frozen=True)
class PatternItem:
	kind: ItemKind
	text: str
	value_kind: Optional[ValueKind] = None
	field_name: Optional[str] = None

	def matches_word(self, text: str) -> bool:
		return self.text.lower() == text.lower()


Pattern = Tuple[PatternItem, ...]


def compile_pattern(text: str) -> Pattern:
	items: List[PatternItem] = []
	for part in text.split():
		if part in SLOT_KINDS:
			items.append(PatternItem(ItemKind.SLOT, part, value_kind=SLOT_KINDS[part]))
		elif part in FIELD_NAMES:
			items.append(PatternItem(ItemKind.FIELD, part, field_name=FIELD_NAMES[part]))
		elif part.startswith("?") and len(part) > 1:
			items.append(PatternItem(ItemKind.OPTIONAL, part[1:]))
		else:
			items.append(PatternItem(ItemKind.WORD, part))
	return tuple(items)


def literal_weight(pattern: Pattern) -> int:
	return sum(1 for item in pattern if item.kind == ItemKind.WORD)


_EXAMPLES = {
	ValueKind.NUMBER: "10",
	ValueKind.STRING: '"hello"',
	ValueKind.BOOLEAN: "<touching edge>",
	ValueKind.ANY: '"hello"',
}
_FIELD_EXAMPLES = {"VARIABLE": "[score]", "LIST": "[items]", "KEY": "space", "OPTION": '"Sprite1"'}


@dataclass(frozen=True)
class BlockSpec:
	name: str
	category: Category
	patterns: Tuple[Pattern, ...] = ()
	shape: Shape = Shape.STACK
	slots: Tuple[ValueKind, ...] = ()
	returns: Optional[ValueKind] = None
	suspends: bool = False
	fields: Tuple[str, ...] = field(default=())

	@property
	def is_reporter(self) -> bool:
		return self.shape == Shape.REPORTER

	@property
	def usage(self) -> str:
		"""Render the first pattern as an example line, e.g. ``go to x: 10 y: 10``."""
		if not self.patterns:
			return self.name
		words: List[str] = []
		for item in self.patterns[0]:
			if item.kind == ItemKind.SLOT:
				words.append(_EXAMPLES[item.value_kind])  # type: ignore[index]
			elif item.kind == ItemKind.FIELD:
				words.append(_FIELD_EXAMPLES[item.field_name])  # type: ignore[index]
			elif item.text in (":", ","):
				if words:
					words[-1] += item.text
			else:
				words.append(item.text)
		return " ".join(words)


def _spec(name: str, category: Category, *patterns: str, shape: Shape = Shape.STACK, returns: Optional[ValueKind] = None, suspends: bool = False, slots: Optional[Tuple[ValueKind, ...]] = None) -> BlockSpec:
	compiled = tuple(compile_pattern(p) for p in patterns)
	if slots is None:
		slots = tuple(i.value_kind for i in compiled[0] if i.kind == ItemKind.SLOT) if compiled else ()  # type: ignore[misc]
	fields = tuple(i.field_name for i in compiled[0] if i.kind == ItemKind.FIELD) if compiled else ()  # type: ignore[misc]
	return BlockSpec(name, category, compiled, shape, slots, returns, suspends, fields)  # type: ignore[arg-type]


def _hat(name: str, *patterns: str) -> BlockSpec:
	return _spec(name, Category.EVENT, *patterns, shape=Shape.HAT)


def _reporter(name: str, category: Category, returns: ValueKind, *patterns: str, slots: Optional[Tuple[ValueKind, ...]] = None) -> BlockSpec:
	return _spec(name, category, *patterns, shape=Shape.REPORTER, returns=returns, slots=slots)


N, S, B, A = ValueKind.NUMBER, ValueKind.STRING, ValueKind.BOOLEAN, ValueKind.ANY

E = Category.EVENT
M = Category.MOTION
L = Category.LOOKS
SO = Category.SOUND
C = Category.CONTROL
SE = Category.SENSING
O = Category.OPERATORS
V = Category.VARIABLES
P = Category.PEN


BLOCKS: Tuple[BlockSpec, ...] = (
	# events
	_hat("whenFlagClicked", "when flagClicked", "when green flag clicked", "when flag clicked"),
	_hat("whenKeyPressed", "when %k key pressed"),
	_hat("whenThisSpriteClicked", "when this sprite clicked", "when sprite clicked"),
	_hat("whenIReceive", "when I receive %m"),
	_hat("whenIStartAsClone", "when I start as a clone", "when I start as clone"),
	_spec("broadcast", E, "broadcast %s"),
	_spec("broadcastAndWait", E, "broadcastAndWait %s", "broadcast %s and wait", suspends=True),
	# motion
	_spec("move", M, "move %n ?steps"),
	_spec("turnRight", M, "turn right %n ?degrees", "turn %n ?degrees", "turnRight %n"),
	_spec("turnLeft", M, "turn left %n ?degrees", "turnLeft %n"),
	_spec("goToXY", M, "go to x : %n y : %n", "goto x : %n y : %n", "goToXY %n %n"),
	_spec("goTo", M, "go to %m", "goto %m"),
	_spec("glideToXY", M, "glide %n ?secs ?seconds to x : %n y : %n", suspends=True),
	_spec("glideTo", M, "glide %n ?secs ?seconds to %m", suspends=True),
	_spec("pointInDirection", M, "point in direction %n", "pointInDirection %n"),
	_spec("pointTowards", M, "point towards %m"),
	_spec("changeX", M, "change x by %n", "changeX %n"),
	_spec("setX", M, "set x to %n", "setX %n"),
	_spec("changeY", M, "change y by %n", "changeY %n"),
	_spec("setY", M, "set y to %n", "setY %n"),
	_spec("ifOnEdgeBounce", M, "if on edge ?, bounce", "ifOnEdgeBounce"),
	_spec("setRotationStyle", M, "set rotation style ?to %m"),
	_reporter("xPosition", M, N, "x position", "xPosition"),
	_reporter("yPosition", M, N, "y position", "yPosition"),
	_reporter("direction", M, N, "direction"),
	# looks
	_spec("sayFor", L, "say %a for %n ?seconds ?secs", "sayFor %a %n"),
	_spec("say", L, "say %a"),
	_spec("thinkFor", L, "think %a for %n ?seconds ?secs", "thinkFor %a %n"),
	_spec("think", L, "think %a"),
	_spec("show", L, "show"),
	_spec("hide", L, "hide"),
	_spec("switchCostume", L, "switch costume to %s", "switchCostume %s"),
	_spec("nextCostume", L, "next costume", "nextCostume"),
	_spec("switchBackdrop", L, "switch backdrop to %s", "switchBackdrop %s"),
	_spec("nextBackdrop", L, "next backdrop", "nextBackdrop"),
	_spec("changeSize", L, "change size by %n ?%", "changeSize %n"),
	_spec("setSize", L, "set size to %n ?%", "setSize %n"),
	_spec("changeEffect", L, "change %m effect by %n"),
	_spec("setEffect", L, "set %m effect to %n"),
	_spec("clearEffects", L, "clear graphic effects", "clearGraphicEffects"),
	_spec("goToFront", L, "go to front ?layer"),
	_spec("goToBack", L, "go to back ?layer"),
	_spec("goForwardLayers", L, "go forward %n ?layers"),
	_spec("goBackwardLayers", L, "go backward %n ?layers"),
	_reporter("costumeNumber", L, N, "costume number"),
	_reporter("costumeName", L, S, "costume name"),
	_reporter("backdropNumber", L, N, "backdrop number"),
	_reporter("backdropName", L, S, "backdrop name"),
	_reporter("size", L, N, "size"),
	# sound
	_spec("playSound", SO, "play sound %s", "play sound %s until done", "start sound %s", "playSound %s"),
	_spec("stopAllSounds", SO, "stop all sounds", "stopAllSounds"),
	_spec("changeVolume", SO, "change volume by %n ?%"),
	_spec("setVolume", SO, "set volume to %n ?%"),
	_reporter("volume", SO, N, "volume"),
	# control
	_spec("wait", C, "wait %n ?seconds ?secs", suspends=True),
	_spec("waitUntil", C, "wait until %b", "waitUntil %b", suspends=True),
	_spec("repeat", C, "repeat %n ?times", shape=Shape.C),
	_spec("repeatUntil", C, "repeat until %b", "repeatUntil %b", shape=Shape.C),
	_spec("forever", C, "forever", shape=Shape.C),
	_spec("if", C, "if %b then", shape=Shape.C),
	_spec("ifElse", C, shape=Shape.C, slots=(B,)),
	_spec("stopAll", C, "stop all", "stopAll", shape=Shape.CAP),
	_spec("stopThisScript", C, "stop this script", shape=Shape.CAP),
	_spec("stopOtherScripts", C, "stop other scripts ?in ?sprite"),
	_spec("createClone", C, "create clone of %m", "createClone %m"),
	_spec("deleteThisClone", C, "delete this clone", "deleteThisClone", shape=Shape.CAP),
	# sensing
	_spec("askAndWait", SE, "ask %s ?and ?wait", "askAndWait %s", suspends=True),
	_spec("resetTimer", SE, "reset timer", "resetTimer"),
	_spec("setDragMode", SE, "set drag mode %m"),
	_reporter("touchingColor", SE, B, "touching color %s"),
	_reporter("touching", SE, B, "touching %m"),
	_reporter("keyPressed", SE, B, "key %k pressed", "keyPressed %k"),
	_reporter("mouseDown", SE, B, "mouse down", "mouseDown"),
	_reporter("mouseX", SE, N, "mouse x", "mouseX"),
	_reporter("mouseY", SE, N, "mouse y", "mouseY"),
	_reporter("timer", SE, N, "timer"),
	_reporter("answer", SE, S, "answer"),
	_reporter("distanceTo", SE, N, "distance to %m"),
	_reporter("username", SE, S, "username"),
	# operators
	_reporter("pickRandom", O, N, "pick random %n to %n", "pickRandom %n %n"),
	_reporter("join", O, S, "join %a %a"),
	_reporter("letterOf", O, S, "letter %n of %s"),
	_reporter("lengthOf", O, N, "length of %a"),
	_reporter("round", O, N, "round %n"),
	*(_reporter(fn, O, N, f"{fn} ?of %n") for fn in sorted(MATH_FUNCTIONS)),
	_reporter("add", O, N, slots=(N, N)),
	_reporter("subtract", O, N, slots=(N, N)),
	_reporter("multiply", O, N, slots=(N, N)),
	_reporter("divide", O, N, slots=(N, N)),
	_reporter("mod", O, N, slots=(N, N)),
	_reporter("negate", O, N, slots=(N,)),
	_reporter("lt", O, B, slots=(A, A)),
	_reporter("gt", O, B, slots=(A, A)),
	_reporter("equals", O, B, slots=(A, A)),
	_reporter("notEquals", O, B, slots=(A, A)),
	_reporter("lte", O, B, slots=(A, A)),
	_reporter("gte", O, B, slots=(A, A)),
	_reporter("contains", O, B, slots=(A, A)),
	_reporter("and", O, B, slots=(B, B)),
	_reporter("or", O, B, slots=(B, B)),
	_reporter("not", O, B, slots=(B,)),
	# variables and lists
	_spec("setVariable", V, "set %v to %a"),
	_spec("changeVariable", V, "change %v by %n"),
	_spec("showVariable", V, "show variable %v"),
	_spec("hideVariable", V, "hide variable %v"),
	_spec("addToList", V, "add %a to %l"),
	_spec("deleteAllOfList", V, "delete all of %l"),
	_spec("deleteOfList", V, "delete %n of %l"),
	_spec("insertAtList", V, "insert %a at %n of %l"),
	_spec("replaceItemOfList", V, "replace item %n of %l with %a"),
	_spec("showList", V, "show list %l"),
	_spec("hideList", V, "hide list %l"),
	_reporter("itemNumberOfList", V, N, "item number of %a in %l"),
	_reporter("itemOfList", V, A, "item %n of %l"),
	_reporter("variable", V, A),
	_reporter("listContents", V, A),
	# pen
	_spec("penDown", P, "pen down", "penDown"),
	_spec("penUp", P, "pen up", "penUp"),
	_spec("setPenColor", P, "set pen color to %s", "setPenColor %s"),
	_spec("changePenSize", P, "change pen size by %n", "changePenSize %n"),
	_spec("setPenSize", P, "set pen size to %n", "setPenSize %n"),
	_spec("stamp", P, "stamp"),
	_spec("eraseAll", P, "erase all", "eraseAll", "clear"),
	# custom blocks
	_reporter("argument", Category.CUSTOM, A),
	_spec("call", Category.CUSTOM),
)


BLOCKS_BY_NAME: Dict[str, BlockSpec] = {spec.name: spec for spec in BLOCKS}


def _index_by_first_word(shape_filter) -> Dict[str, List[Tuple[BlockSpec, Pattern]]]:
	index: Dict[str, List[Tuple[BlockSpec, Pattern]]] = {}
	for spec in BLOCKS:
		if not shape_filter(spec):
			continue
		for pattern in spec.patterns:
			index.setdefault(pattern[0].text.lower(), []).append((spec, pattern))
	for candidates in index.values():
		# stable: more literal words first, then declaration order
		candidates.sort(key=lambda pair: -literal_weight(pair[1]))
	return index


STATEMENT_INDEX = _index_by_first_word(lambda s: s.shape in (Shape.STACK, Shape.C, Shape.CAP))
HAT_INDEX = _index_by_first_word(lambda s: s.shape == Shape.HAT)
REPORTER_INDEX = _index_by_first_word(lambda s: s.shape == Shape.REPORTER)

# Phrases offered when an unknown block name needs a suggestion.
KNOWN_BLOCK_WORDS: Tuple[str, ...] = tuple(
	sorted({word for word in STATEMENT_INDEX} | {spec.name for spec in BLOCKS if spec.patterns and not spec.is_reporter})
)


def lookup(name: str) -> Optional[BlockSpec]:
	return BLOCKS_BY_NAME.get(name)
