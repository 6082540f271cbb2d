from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field


ENV_PREFIX = "WHISKERS_"


class CompilerOptions(BaseModel):
	"""Knobs shared by the tokenizer, the code generator and the preview page."""

	tab_width: int = Field(default=4, ge=1, le=16)
	stage_width: int = Field(default=480, ge=1)
	stage_height: int = Field(default=360, ge=1)
	# forever / repeat until yield one frame per iteration
	loop_yield: bool = True
	preview_title: str = "Whiskers Preview"

	@classmethod
	def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CompilerOptions":
		environ = os.environ if environ is None else environ
		values = {}
		for name in cls.model_fields:
			key = ENV_PREFIX + name.upper()
			if key in environ:
				values[name] = environ[key]
		return cls.model_validate(values)
