import json
import shutil
import subprocess

import pytest

from whiskers import SpriteSource, compile_many, compile_one


NODE = shutil.which("node")

pytestmark = pytest.mark.skipif(NODE is None, reason="node is not installed")


def run_program(tmp_path, program, body):
	program_path = tmp_path / "program.js"
	program_path.write_text(program, encoding="utf-8")
	harness = tmp_path / "harness.js"
	harness.write_text(
		f"const rt = require({json.dumps(str(program_path))}).buildProgram({{}});\n{body}\n",
		encoding="utf-8",
	)
	completed = subprocess.run([NODE, str(harness)], capture_output=True, text=True, timeout=30, check=True)
	return completed.stdout.splitlines()


def test_repeat_moves_three_times(tmp_path):
	result = compile_one("when flagClicked\n    repeat 3\n        move 10\n")
	assert result.success
	lines = run_program(
		tmp_path,
		result.program,
		"const calls = [];\n"
		"const move = rt.Sprite.prototype.move;\n"
		"rt.Sprite.prototype.move = function (steps) { calls.push(steps); return move.call(this, steps); };\n"
		"rt.greenFlag().then(() => console.log('CALLS ' + JSON.stringify(calls)));",
	)
	assert lines[-1] == "CALLS [10,10,10]"


def test_broadcast_and_wait_waits_for_every_receiver(tmp_path):
	result = compile_many([
		SpriteSource("Main", "when flagClicked\n    broadcast \"go\" and wait\n    say \"done\"\n"),
		SpriteSource("Slow", "when I receive \"go\"\n    wait 0.4\n    say \"slow\"\n"),
		SpriteSource("Quick", "when I receive \"go\"\n    wait 0.2\n    say \"quick\"\n"),
	])
	assert result.success
	lines = run_program(tmp_path, result.program, "rt.greenFlag().then(() => console.log('FINISHED'));")
	said = [line for line in lines if line.startswith("[say]")]
	assert said == ["[say] Quick says: quick", "[say] Slow says: slow", "[say] Main says: done"]
	assert lines[-1] == "FINISHED"


def test_stop_all_ends_forever_loops(tmp_path):
	result = compile_one("when flagClicked\n    forever\n        turn right 15 degrees\n")
	lines = run_program(
		tmp_path,
		result.program,
		"const running = rt.greenFlag();\n"
		"setTimeout(() => rt.stopAll(), 100);\n"
		"running.then(() => console.log('TASKS ' + rt.tasks.size));",
	)
	assert lines[-1] == "TASKS 0"
