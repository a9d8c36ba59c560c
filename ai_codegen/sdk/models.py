"""
Request and response envelopes for the completion API.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ai_codegen.core.errors import DecodeError, EmptyChoices


@dataclass(frozen=True)
class CompletionRequest:
    """Body of a completion request."""
    prompt: str
    max_tokens: int = 1000

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent to the API."""
        return asdict(self)


@dataclass(frozen=True)
class CompletionChoice:
    """One candidate completion."""
    text: str
    index: int
    logprobs: Optional[int]
    finish_reason: str


@dataclass(frozen=True)
class CompletionResponse:
    """Parsed completion response.

    Only ``choices`` is required; the remaining fields are informational.
    """
    choices: List[CompletionChoice]
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Any) -> "CompletionResponse":
        """Build a response from a decoded JSON body.

        Raises:
            DecodeError: If the body does not have the expected structure
        """
        if not isinstance(payload, dict):
            raise DecodeError("response body must be a JSON object")

        raw_choices = payload.get('choices')
        if not isinstance(raw_choices, list):
            raise DecodeError("missing field `choices`")

        choices = [_parse_choice(raw, i) for i, raw in enumerate(raw_choices)]

        return cls(
            choices=choices,
            id=_optional(payload, 'id', str),
            object=_optional(payload, 'object', str),
            created=_optional(payload, 'created', int),
            model=_optional(payload, 'model', str)
        )

    def first_text(self) -> str:
        """Text of the first choice.

        Raises:
            EmptyChoices: If the response has no choices
        """
        if not self.choices:
            raise EmptyChoices()
        return self.choices[0].text


def _parse_choice(raw: Any, position: int) -> CompletionChoice:
    if not isinstance(raw, dict):
        raise DecodeError(f"choice {position} must be a JSON object")

    text = raw.get('text')
    if not isinstance(text, str):
        raise DecodeError(f"choice {position} missing field `text`")

    # index and finish_reason are informational; tolerate their absence
    index = raw.get('index', position)
    if isinstance(index, bool) or not isinstance(index, int):
        raise DecodeError(f"choice {position} field `index` must be an integer")

    return CompletionChoice(
        text=text,
        index=index,
        logprobs=raw.get('logprobs'),
        finish_reason=str(raw.get('finish_reason') or "")
    )


def _optional(payload: Dict[str, Any], key: str, expected: type) -> Any:
    value = payload.get(key)
    if value is not None and not isinstance(value, expected):
        raise DecodeError(f"field `{key}` has the wrong type")
    return value
