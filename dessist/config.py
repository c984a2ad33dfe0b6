"""
config.py
=========
Generator options shared by the workflow, the emission engine and the CLI.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class SqlCompatibility(str, Enum):
    SQL2008 = "SQL2008"
    SQL2005 = "SQL2005"


class ContentPrecedence(str, Enum):
    """Which text segment wins when an element carries several."""

    FIRST = "first"
    LAST = "last"


class GeneratorOptions(BaseModel):
    """
    Knobs consumed by the conversion pipeline.

    `sql_mode` selects which helper templates the program header injects;
    `use_smo` switches SQL tasks between the batch-aware native helper and
    the generic DB-API placeholder.
    """

    sql_mode: SqlCompatibility = Field(default=SqlCompatibility.SQL2008)
    use_smo: bool = Field(default=True)
    content_precedence: ContentPrecedence = Field(default=ContentPrecedence.LAST)
    indent: str = Field(default="    ", description="One level of indentation in emitted code.")
    output_filename: str = Field(default="program.py", min_length=1)

    model_config = {"frozen": True}

    @field_validator("indent")
    @classmethod
    def indent_must_be_whitespace(cls, v: str) -> str:
        if not v or v.strip():
            raise ValueError("indent must be a non-empty run of spaces or tabs.")
        return v
