import pytest

from whiskersc import main


def write(path, text):
	path.write_text(text, encoding="utf-8")
	return path


def test_cli_writes_program_and_preview(tmp_path, capsys):
	cat = write(tmp_path / "cat.wsk", "when flagClicked\n    repeat 3\n        move 10\n")
	stage = write(tmp_path / "stage.wsk", "var score = 0\n")
	output = tmp_path / "build" / "game"
	code = main([f"Kitty={cat}", "--stage", str(stage), "-o", str(output), "--title", "Demo"])
	assert code == 0
	program = (tmp_path / "build" / "game.js").read_text(encoding="utf-8")
	assert 'rt.defineSprite("Kitty"' in program
	assert 'rt.defineStage("Stage"' in program
	assert "<title>Demo</title>" in (tmp_path / "build" / "game.html").read_text(encoding="utf-8")
	assert "Sprites: 2" in capsys.readouterr().out


def test_cli_name_defaults_to_file_stem(tmp_path):
	cat = write(tmp_path / "cat.wsk", "when flagClicked\n    show\n")
	assert main([str(cat), "-o", str(tmp_path / "out")]) == 0
	assert 'rt.defineSprite("cat"' in (tmp_path / "out.js").read_text(encoding="utf-8")


def test_cli_reports_errors(tmp_path, capsys):
	cat = write(tmp_path / "cat.wsk", "when flagClicked\n    mvoe 10\n")
	assert main([str(cat), "-o", str(tmp_path / "out")]) == 1
	out = capsys.readouterr().out
	assert "[ERROR] line 2, column 5: Unknown block 'mvoe'" in out
	assert "hint:" in out


def test_cli_missing_file(tmp_path):
	with pytest.raises(SystemExit) as info:
		main([str(tmp_path / "missing.wsk")])
	assert info.value.code == 2


def test_cli_requires_input():
	with pytest.raises(SystemExit):
		main([])


def test_cli_rejects_invalid_tab_width(tmp_path, capsys):
	cat = write(tmp_path / "cat.wsk", "when flagClicked\n    show\n")
	with pytest.raises(SystemExit) as info:
		main([str(cat), "--tab-width", "0", "-o", str(tmp_path / "out")])
	assert info.value.code == 2
	assert "Invalid option" in capsys.readouterr().err
	assert not (tmp_path / "out.js").exists()
