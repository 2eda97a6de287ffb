"""Result values used instead of exceptions for validation and git calls."""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, TypeVar, Union

from mcp.types import TextContent

from .errors import GitServerError

T = TypeVar("T")
E = TypeVar("E", bound=GitServerError)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error)


Result = Union[Ok[T], Err[GitServerError]]


@dataclass(frozen=True)
class Success:
    """Tool call completed; ``text`` is shown to the assistant."""

    text: str
    is_error: bool = field(default=False, init=False)


@dataclass(frozen=True)
class Failure:
    """Tool call failed; ``text`` is the prefixed error message."""

    text: str
    is_error: bool = field(default=True, init=False)


InvocationResult = Union[Success, Failure]


def text_content(result: InvocationResult) -> List[TextContent]:
    return [TextContent(type="text", text=result.text)]


def to_call_result(result: InvocationResult) -> Dict[str, Any]:
    """Render an invocation result as the ``tools/call`` result payload.

    ``isError`` is only present on failures.
    """
    payload: Dict[str, Any] = {
        "content": [
            item.model_dump(mode="json", by_alias=True, exclude_none=True)
            for item in text_content(result)
        ]
    }
    if result.is_error:
        payload["isError"] = True
    return payload
