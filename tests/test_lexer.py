import pytest

from whiskers.diagnostics import ErrorCode, LexerError
from whiskers.lexer import Lexer, TokenKind, tokenize


def kinds(source):
	return [t.kind for t in tokenize(source)]


def test_simple_script_tokens():
	tokens = tokenize("when flagClicked\n    move 10 steps\n")
	assert [(t.kind, t.text) for t in tokens] == [
		(TokenKind.KEYWORD, "when"),
		(TokenKind.IDENTIFIER, "flagClicked"),
		(TokenKind.NEWLINE, ""),
		(TokenKind.INDENT, ""),
		(TokenKind.KEYWORD, "move"),
		(TokenKind.NUMBER, "10"),
		(TokenKind.KEYWORD, "steps"),
		(TokenKind.NEWLINE, ""),
		(TokenKind.DEDENT, ""),
		(TokenKind.EOF, ""),
	]


def test_positions_are_one_based():
	tokens = tokenize("when flagClicked\n    say \"hi\"\n")
	say = next(t for t in tokens if t.text == "say")
	text = next(t for t in tokens if t.kind == TokenKind.STRING)
	assert (say.line, say.column) == (2, 5)
	assert (text.line, text.column) == (2, 9)
	assert text.text == "hi"


@pytest.mark.parametrize(
	"source",
	[
		"when flagClicked\n    repeat 3\n        move 10\n",
		"when flagClicked\n    forever\n        if <touching edge> then\n            turn right 15 degrees\n    say \"x\"\n",
		"define a\n    b\n\n\nwhen flagClicked\n\tmove 1",
		"",
		"// only a comment",
	],
)
def test_indents_and_dedents_balance(source):
	tokens = tokenize(source)
	assert tokens[-1].kind == TokenKind.EOF
	assert sum(1 for t in tokens if t.kind == TokenKind.INDENT) == sum(1 for t in tokens if t.kind == TokenKind.DEDENT)


def test_blank_and_comment_lines_do_not_change_indentation():
	source = "when flagClicked\n    move 1\n\n// note at column one\n    move 2\n"
	result = kinds(source)
	assert result.count(TokenKind.INDENT) == 1
	assert result.count(TokenKind.DEDENT) == 1
	assert TokenKind.COMMENT in result


def test_tab_counts_as_four_spaces():
	tokens = tokenize("when flagClicked\n\tmove 1\n    move 2\n")
	assert [t.kind for t in tokens].count(TokenKind.INDENT) == 1


def test_tab_width_is_configurable():
	tokens = Lexer("when flagClicked\n\tmove 1\n  move 2\n", tab_width=2).tokenize()
	assert [t.kind for t in tokens].count(TokenKind.INDENT) == 1


def test_dedent_pops_every_deeper_level():
	tokens = tokenize("when flagClicked\n    repeat 2\n        move 1\nwhen flagClicked\n    move 2\n")
	first_dedents = []
	for t in tokens:
		if t.kind == TokenKind.DEDENT:
			first_dedents.append(t.line)
	assert first_dedents.count(4) == 2


def test_inconsistent_indentation_is_fatal():
	with pytest.raises(LexerError) as info:
		tokenize("when flagClicked\n    repeat 2\n        move 1\n      move 2\n")
	diagnostic = info.value.diagnostic
	assert diagnostic.code == ErrorCode.INCONSISTENT_INDENTATION
	assert diagnostic.line == 4
	assert "Inconsistent indentation" in diagnostic.message


def test_unterminated_string_reports_opening_quote():
	source = "when flagClicked\n    say \"hi\"\nvar name \"oops\n"
	with pytest.raises(LexerError) as info:
		tokenize(source)
	diagnostic = info.value.diagnostic
	assert diagnostic.code == ErrorCode.UNTERMINATED_STRING
	assert (diagnostic.line, diagnostic.column) == (3, 10)


def test_unterminated_string_at_end_of_input():
	with pytest.raises(LexerError) as info:
		tokenize("say 'abc")
	assert info.value.diagnostic.column == 5


def test_string_escapes_and_single_quotes():
	tokens = tokenize("say 'it\\'s \\\"fine\\\"\\n'")
	text = next(t for t in tokens if t.kind == TokenKind.STRING)
	assert text.text == "it's \"fine\"\n"


def test_numbers():
	tokens = tokenize("move -20 1.5 3.")
	numbers = [t.text for t in tokens if t.kind == TokenKind.NUMBER]
	assert numbers == ["-20", "1.5", "3"]


def test_operators_prefer_two_characters():
	tokens = tokenize("a <= b != c == d >= e < f")
	ops = [t.text for t in tokens if t.kind == TokenKind.OPERATOR]
	assert ops == ["<=", "!=", "==", ">=", "<"]


def test_unknown_characters_are_skipped():
	tokens = tokenize("move 10 @ # $")
	assert [t.text for t in tokens if t.kind not in (TokenKind.NEWLINE, TokenKind.EOF)] == ["move", "10"]


def test_trailing_comment_on_code_line():
	tokens = tokenize("move 10 // go right\n")
	comment = next(t for t in tokens if t.kind == TokenKind.COMMENT)
	assert comment.text == "go right"
	assert comment.column == 9


def test_punctuation():
	result = kinds("( ) [ ] { } : ,")
	assert result[:8] == [
		TokenKind.LPAREN,
		TokenKind.RPAREN,
		TokenKind.LBRACKET,
		TokenKind.RBRACKET,
		TokenKind.LBRACE,
		TokenKind.RBRACE,
		TokenKind.COLON,
		TokenKind.COMMA,
	]
