from __future__ import annotations

import logging
from dataclasses import is_dataclass
from pathlib import Path
from typing import Any, Dict

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, model_validator

from whiskers import CompilerOptions, LexerError, SpriteSource, TokenKind, WhiskersCompiler, tokenize


logger = logging.getLogger(__name__)

app = FastAPI(title="Whiskers Compiler", version="1.0.0")

STATIC_DIR = Path(__file__).parent / "static"
if STATIC_DIR.exists():
	app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

OPTIONS = CompilerOptions.from_env()


class SpriteRequest(BaseModel):
	name: str = Field(min_length=1)
	code: str = ""
	isStage: bool = False
	costumes: list[str] = []
	sounds: list[str] = []


class CompileRequest(BaseModel):
	# Either a single legacy source (`code` or `source`) or a list of sprites.
	code: str | None = None
	source: str | None = None
	sprites: list[SpriteRequest] | None = None
	debug: bool = False

	@model_validator(mode="after")
	def _require_input(self) -> "CompileRequest":
		if self.sprites is None and self.code is None and self.source is None:
			raise ValueError("Provide 'code', 'source' or 'sprites'")
		return self

	def sprite_sources(self) -> list[SpriteSource]:
		if self.sprites is not None:
			return [SpriteSource(s.name, s.code, s.isStage, list(s.costumes), list(s.sounds)) for s in self.sprites]
		text = self.code if self.code is not None else self.source
		return [SpriteSource("Sprite1", text or "")]


class TokensRequest(BaseModel):
	code: str
	tab_width: int | None = Field(default=None, ge=1, le=16)


def _to_json(obj: Any, *, depth: int = 0, max_depth: int = 40) -> Any:
	"""Best-effort conversion of compiler artifacts to JSON-safe structures."""
	if depth > max_depth:
		return {"_truncated": True}
	if obj is None:
		return None
	if isinstance(obj, (str, int, float, bool)):
		return obj
	if isinstance(obj, (list, tuple)):
		return [_to_json(x, depth=depth + 1, max_depth=max_depth) for x in obj]
	if isinstance(obj, dict):
		return {str(k): _to_json(v, depth=depth + 1, max_depth=max_depth) for k, v in obj.items()}
	if is_dataclass(obj):
		data: Dict[str, Any] = {"_type": obj.__class__.__name__}
		for k, v in obj.__dict__.items():
			data[k] = _to_json(v, depth=depth + 1, max_depth=max_depth)
		return data
	# Enums (Category/ValueKind/Severity)
	if hasattr(obj, "name") and hasattr(obj, "value"):
		value = getattr(obj, "value")
		return value if isinstance(value, str) else getattr(obj, "name")
	return str(obj)


def _diagnostic_json(diagnostic) -> Dict[str, Any]:
	data = diagnostic.to_dict()
	data["sprite"] = diagnostic.sprite
	return data


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
	index_path = STATIC_DIR / "index.html"
	if index_path.exists():
		return HTMLResponse(index_path.read_text(encoding="utf-8"))
	return HTMLResponse(
		"<h2>Whiskers Compiler API</h2><p>POST <code>/api/compile</code> with JSON: "
		"<code>{\"sprites\": [{\"name\": \"Cat\", \"code\": \"...\"}]}</code></p>"
	)


@app.get("/health")
def health() -> Dict[str, str]:
	return {"status": "ok"}


@app.post("/api/compile")
def compile_source(req: CompileRequest) -> Dict[str, Any]:
	sprites = req.sprite_sources()
	result = WhiskersCompiler(OPTIONS).compile(sprites, debug=req.debug)
	logger.info("compile request: %d sprite(s), success=%s", len(sprites), result.success)
	response: Dict[str, Any] = {
		"js": result.program,
		"html": result.preview,
		"success": result.success,
		"diagnostics": [_diagnostic_json(d) for d in result.diagnostics],
		"duration_ms": result.duration_ms,
	}
	if req.debug:
		response["debug"] = _to_json(result.debug)
	return response


@app.post("/api/preview", response_class=HTMLResponse)
def preview_source(req: CompileRequest) -> HTMLResponse:
	result = WhiskersCompiler(OPTIONS).compile(req.sprite_sources())
	return HTMLResponse(result.preview)


@app.post("/api/tokens")
def tokens_source(req: TokensRequest) -> Dict[str, Any]:
	tab_width = req.tab_width or OPTIONS.tab_width
	try:
		tokens = tokenize(req.code, tab_width)
	except LexerError as exc:
		return {"tokens": [], "diagnostics": [_diagnostic_json(exc.diagnostic)]}
	return {
		"tokens": [
			{"kind": t.kind.name, "text": t.text, "line": t.line, "column": t.column}
			for t in tokens
			if t.kind != TokenKind.EOF
		],
		"diagnostics": [],
	}


if __name__ == "__main__":
	import uvicorn

	uvicorn.run("webapp.main:app", host="127.0.0.1", port=8000)
