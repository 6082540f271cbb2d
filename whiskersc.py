"""Command line entry point: compile sprite files into a .js program and .html preview."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from whiskers import CompilerOptions, SpriteSource, WhiskersCompiler


def _sprite_argument(text: str) -> SpriteSource:
	name, sep, path_text = text.partition("=")
	if not sep:
		path_text, name = text, Path(text).stem
	path = Path(path_text)
	if not name:
		raise argparse.ArgumentTypeError(f"Missing sprite name in '{text}'")
	if not path.is_file():
		raise argparse.ArgumentTypeError(f"Input file not found: '{path}'")
	return SpriteSource(name, path.read_text(encoding="utf-8"))


def _build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="Compile Whiskers sprite scripts into a browser program")
	parser.add_argument("sprites", nargs="*", type=_sprite_argument, metavar="NAME=PATH", help="Sprite source file; the name defaults to the file stem")
	parser.add_argument("--stage", type=Path, help="Stage source file whose variables are shared by every sprite")
	parser.add_argument("-o", "--output", type=Path, default=Path("program"), help="Output path without extension (default: program)")
	parser.add_argument("--title", help="Preview page title")
	parser.add_argument("--tab-width", type=int, help="Columns a tab counts for when measuring indentation")
	parser.add_argument("--no-loop-yield", action="store_true", help="Do not yield a frame in forever / repeat until loops")
	parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler stages to stderr")
	return parser


def main(argv: Optional[List[str]] = None) -> int:
	parser = _build_arg_parser()
	args = parser.parse_args(argv)
	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

	sprites: List[SpriteSource] = []
	if args.stage is not None:
		if not args.stage.is_file():
			parser.error(f"Stage file not found: '{args.stage}'")
		sprites.append(SpriteSource("Stage", args.stage.read_text(encoding="utf-8"), is_stage=True))
	sprites.extend(args.sprites)
	if not sprites:
		parser.error("Give at least one sprite file or --stage")

	overrides = {}
	if args.title is not None:
		overrides["preview_title"] = args.title
	if args.tab_width is not None:
		overrides["tab_width"] = args.tab_width
	if args.no_loop_yield:
		overrides["loop_yield"] = False
	try:
		options = CompilerOptions.model_validate({**CompilerOptions.from_env().model_dump(), **overrides})
	except ValidationError as exc:
		parser.error(f"Invalid option: {exc.errors()[0]['msg']}")

	result = WhiskersCompiler(options).compile(sprites)
	for diagnostic in result.diagnostics:
		print(f"[{diagnostic.severity.name}] line {diagnostic.line}, column {diagnostic.column}: {diagnostic.message}")
		if diagnostic.suggestion:
			print(f"    hint: {diagnostic.suggestion}")

	output: Path = args.output
	output.parent.mkdir(parents=True, exist_ok=True)
	js_path = output.with_suffix(".js")
	html_path = output.with_suffix(".html")
	js_path.write_text(result.program, encoding="utf-8")
	html_path.write_text(result.preview, encoding="utf-8")
	print(f"Sprites: {len(sprites)} | Time: {result.duration_ms:.2f} ms | Wrote {js_path} and {html_path}")
	return 0 if result.success else 1


if __name__ == "__main__":
	sys.exit(main())
