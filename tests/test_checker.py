import pytest

from whiskers.checker import Globals, check
from whiskers.diagnostics import DiagnosticEngine, ErrorCode
from whiskers.lexer import tokenize
from whiskers.parser import parse


def program_of(source):
	diagnostics = DiagnosticEngine()
	program = parse(tokenize(source), diagnostics)
	assert diagnostics.items == []
	return program


def check_source(source, globals_=None):
	return check(program_of(source), globals_)


def codes(items):
	return [d.code for d in items]


TWO_PARAMS = "define jump (height) (times)\n    change y by (height)\n\nwhen flagClicked\n"


@pytest.mark.parametrize("arguments, expected", [("20", 1), ("20 1", 0), ("20 1 5", 1), ("", 1)])
def test_procedure_arity(arguments, expected):
	items = check_source(f"{TWO_PARAMS}    jump {arguments}\n".replace("jump \n", "jump\n"))
	mismatches = [d for d in items if d.code == ErrorCode.PROCEDURE_ARG_MISMATCH]
	assert len(mismatches) == expected


def test_arity_message():
	items = check_source(f"{TWO_PARAMS}    call jump 1 2 3\n")
	assert items[0].message == "Custom block 'jump' expects 2 inputs but got 3"
	assert items[0].line == 5


def test_clean_program_has_no_diagnostics():
	source = (
		"var score = 0\n"
		"list items = []\n"
		"when flagClicked\n"
		"    set [score] to 0\n"
		"    repeat 10\n"
		"        change [score] by 1\n"
		"        add (score) to [items]\n"
		"    if <(score) > (5)> then\n"
		"        say (join \"score: \" (score))\n"
	)
	assert check_source(source) == []


def test_undeclared_variable():
	items = check_source("when flagClicked\n    say (lives)\n")
	assert codes(items) == [ErrorCode.UNDECLARED_VARIABLE]
	assert "lives" in items[0].message
	assert "var lives" in items[0].suggestion


def test_variable_used_before_declaration():
	items = check_source("when flagClicked\n    say (score)\nvar score = 1\n")
	assert codes(items) == [ErrorCode.UNDECLARED_VARIABLE]
	assert "before it is declared" in items[0].message


def test_undeclared_list():
	items = check_source("when flagClicked\n    add 1 to [things]\n")
	assert codes(items) == [ErrorCode.UNDECLARED_VARIABLE]
	assert items[0].message == "List 'things' is not declared"


def test_stage_globals_are_visible():
	stage = program_of("var score = 0\nlist names = []\n")
	items = check_source("when flagClicked\n    change [score] by 1\n    add \"a\" to [names]\n", Globals.from_program(stage))
	assert items == []


def test_parameters_are_not_variables():
	assert check_source("define hop (height)\n    change y by (height)\n") == []


def test_number_slot_rejects_text():
	items = check_source('when flagClicked\n    move "far"\n')
	assert codes(items) == [ErrorCode.NUMBER_REQUIRED]


def test_number_slot_accepts_numeric_text():
	assert check_source('when flagClicked\n    move "10"\n') == []


def test_number_slot_rejects_boolean():
	items = check_source("when flagClicked\n    move true\n")
	assert codes(items) == [ErrorCode.TYPE_MISMATCH]


def test_number_slot_rejects_text_reporter():
	items = check_source("when flagClicked\n    move (answer)\n")
	assert codes(items) == [ErrorCode.NUMBER_REQUIRED]


def test_string_slot_rejects_boolean():
	items = check_source("when flagClicked\n    broadcast true\n")
	assert codes(items) == [ErrorCode.STRING_REQUIRED]


def test_boolean_slot_rejects_literal():
	items = check_source("when flagClicked\n    wait until 5\n")
	assert codes(items) == [ErrorCode.BOOLEAN_REQUIRED]


def test_logic_operator_rejects_literal():
	items = check_source("when flagClicked\n    if <touching edge and 1> then\n        show\n")
	assert codes(items) == [ErrorCode.INVALID_BOOLEAN_OPERATION]


def test_boolean_slot_rejects_number_reporter():
	items = check_source("when flagClicked\n    wait until (x position)\n")
	assert codes(items) == [ErrorCode.INVALID_BOOLEAN_OPERATION]


def test_unknown_call_in_checker():
	program = program_of("when flagClicked\n    show\n")
	program.scripts[0].body[0].name = "call"
	program.scripts[0].body[0].fields = {"NAME": "ghost"}
	items = check(program)
	assert codes(items) == [ErrorCode.UNKNOWN_BLOCK]


def test_checker_does_not_modify_program():
	program = program_of("when flagClicked\n    move \"far\"\n")
	before = repr(program)
	check(program)
	assert repr(program) == before


def test_bare_comparison_condition_is_clean():
	assert check_source("var score = 15\nwhen flagClicked\n    if score > 10 then\n        say \"hi\"\n") == []


@pytest.mark.parametrize(
	"source",
	[
		"var myvar = 0\nwhen flagClicked\n    if 50 and myvar > 10 then\n        say \"hello\"\n",
		"var score = 0\nwhen flagClicked\n    if score > 10 or 5 then\n        say \"hello\"\n",
	],
)
def test_logic_operator_with_number_operand(source):
	items = check_source(source)
	assert codes(items) == [ErrorCode.INVALID_BOOLEAN_OPERATION]


def test_if_with_number_needs_a_condition():
	items = check_source("when flagClicked\n    if 50 then\n        say \"hello\"\n")
	assert codes(items) == [ErrorCode.BOOLEAN_REQUIRED]
