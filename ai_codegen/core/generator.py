"""
Code generator kinds.

A generator kind names the language being produced, the instruction placed
in front of every prompt, and how results are formatted for display.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List

from .formatter import format_plain, format_sql


@dataclass(frozen=True)
class CodeGenerator:
    """Definition of one kind of generated code."""
    kind: str
    name: str
    description: str
    instruction_prefix: str
    format: Callable[[str], str]

    def build_prompt(self, prompt: str) -> str:
        """Wrap a user prompt with the instruction prefix."""
        return f"{self.instruction_prefix} {prompt}"


SQL_GENERATOR = CodeGenerator(
    kind="sql",
    name="Sql",
    description="SQL code",
    instruction_prefix="Generate a SQL code for the given statement.",
    format=format_sql
)

CODE_GENERATOR = CodeGenerator(
    kind="code",
    name="Code",
    description="code",
    instruction_prefix="Generate code for the given statement.",
    format=format_plain
)

_GENERATORS: Dict[str, CodeGenerator] = {
    SQL_GENERATOR.kind: SQL_GENERATOR,
    CODE_GENERATOR.kind: CODE_GENERATOR,
}


def available_kinds() -> List[str]:
    """Return the supported generator kinds."""
    return list(_GENERATORS)


def get_generator(kind: str) -> CodeGenerator:
    """Look up a generator by kind.

    Raises:
        ValueError: If the kind is not supported
    """
    try:
        return _GENERATORS[kind.lower()]
    except KeyError:
        raise ValueError(f"Unsupported generator kind: {kind}. Must be one of: {available_kinds()}")
