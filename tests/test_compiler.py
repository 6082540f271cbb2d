import pydantic
import pytest

from whiskers import (
	CompilerDiagnostic,
	CompilerOptions,
	ErrorCode,
	Program,
	Severity,
	SpriteSource,
	WhiskersCompiler,
	compile_many,
	compile_one,
)


REPEAT = "when flagClicked\n    repeat 3\n        move 10\n"


def test_compile_one_repeat_scenario():
	result = compile_one(REPEAT)
	assert result.success
	assert result.diagnostics == []
	assert "for (let i1 = 0, n1 = Math.round(rt.num(3)); i1 < n1; i1++) {" in result.program
	assert "self.move(10);" in result.program
	assert 'rt.defineSprite("Sprite1"' in result.program
	assert result.duration_ms >= 0


def test_compilation_is_deterministic():
	sprites = [SpriteSource("Stage", "var score = 0\n", is_stage=True), SpriteSource("Cat", REPEAT)]
	first = compile_many(sprites)
	second = compile_many(sprites)
	assert first.program == second.program
	assert first.preview == second.preview


def test_unterminated_string_is_reported_once():
	result = compile_one("when flagClicked\n    say \"hi\"\nvar name \"oops\n")
	assert not result.success
	assert [d.code for d in result.diagnostics] == [ErrorCode.UNTERMINATED_STRING]
	diagnostic = result.diagnostics[0]
	assert (diagnostic.line, diagnostic.column) == (3, 10)
	assert diagnostic.sprite is None
	assert "function buildProgram(host)" in result.program


def test_sprites_are_compiled_in_isolation():
	result = compile_many([
		SpriteSource("Cat", "when flagClicked\n    mvoe 10\n"),
		SpriteSource("Stage", "var score = 0\n", is_stage=True),
	])
	assert not result.success
	assert [d.message for d in result.diagnostics] == ["[Cat] Unknown block 'mvoe'"]
	assert result.diagnostics[0].sprite == "Cat"
	assert not any(d.message.startswith("[Stage]") for d in result.diagnostics)
	assert 'rt.defineStage("Stage"' in result.program
	assert 'rt.defineSprite("Cat"' in result.program


def test_lexer_failure_skips_only_that_sprite():
	result = compile_many([SpriteSource("Cat", "say 'abc"), SpriteSource("Dog", REPEAT)])
	assert [d.message.split("]")[0] for d in result.diagnostics] == ["[Cat"]
	assert 'rt.defineSprite("Cat"' not in result.program
	assert 'rt.defineSprite("Dog"' in result.program


def test_stage_variables_are_global():
	sprite = SpriteSource("Cat", "when flagClicked\n    change [score] by 1\n")
	with_stage = compile_many([SpriteSource("Stage", "var score = 0\n", is_stage=True), sprite])
	assert with_stage.success
	assert with_stage.diagnostics == []
	without_stage = compile_many([sprite])
	assert [d.code for d in without_stage.diagnostics] == [ErrorCode.UNDECLARED_VARIABLE]


def test_single_sprite_messages_have_no_prefix():
	result = compile_many([SpriteSource("Cat", "when flagClicked\n    mvoe 10\n")])
	assert result.diagnostics[0].message == "Unknown block 'mvoe'"


def test_warnings_do_not_fail_compilation():
	result = compile_one("var score = 0\nvar score = 5\nwhen flagClicked\n    show\n")
	assert result.success
	assert result.errors == []
	assert [d.severity for d in result.warnings] == [Severity.WARNING]


def test_debug_payload():
	result = compile_many([SpriteSource("Cat", REPEAT)], debug=True)
	entry = result.debug["sprites"][0]
	assert entry["name"] == "Cat"
	assert entry["isStage"] is False
	assert entry["tokenCount"] > 0
	assert isinstance(entry["ast"], Program)
	assert compile_one(REPEAT).debug is None


def test_options_reach_every_stage():
	options = CompilerOptions(tab_width=2, loop_yield=False, preview_title="Cats")
	result = WhiskersCompiler(options).compile([SpriteSource("Cat", "when flagClicked\n\tforever\n\t  move 1\n")])
	assert result.success
	assert "await rt.frame(task);" not in result.program.split("function registerSprite1")[1]
	assert "<title>Cats</title>" in result.preview


def test_options_from_environment():
	options = CompilerOptions.from_env({"WHISKERS_TAB_WIDTH": "2", "WHISKERS_LOOP_YIELD": "false", "OTHER": "1"})
	assert options.tab_width == 2
	assert options.loop_yield is False
	assert options.stage_width == 480


def test_invalid_environment_value():
	with pytest.raises(pydantic.ValidationError):
		CompilerOptions.from_env({"WHISKERS_TAB_WIDTH": "0"})


def test_localized_message_keeps_sprite_prefix():
	diagnostic = CompilerDiagnostic(ErrorCode.UNKNOWN_BLOCK, "Unknown block 'x'", 1, 1).for_sprite("Cat")
	translated = diagnostic.localized("Bloque desconocido 'x'")
	assert translated.message == "[Cat] Bloque desconocido 'x'"
	assert translated.code == ErrorCode.UNKNOWN_BLOCK


@pytest.mark.parametrize(
	"code, stage",
	[(ErrorCode.UNTERMINATED_STRING, "lexer"), (ErrorCode.UNKNOWN_BLOCK, "parser"), (ErrorCode.INVALID_BOOLEAN_OPERATION, "type")],
)
def test_diagnostic_dict_names_its_stage(code, stage):
	data = CompilerDiagnostic(code, "message", 2, 5).to_dict()
	assert data["code"] == code.value
	assert data["stage"] == stage
	assert data["severity"] == "error"


def test_bare_condition_program_compiles():
	result = compile_one("var score = 15\nwhen flagClicked\n    if score > 10 then\n        say \"hi\"\n")
	assert result.success
	assert result.diagnostics == []
