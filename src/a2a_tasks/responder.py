"""Domain logic seam: turns a message's text into a task result."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Responder(Protocol):
    async def __call__(self, text: str) -> str: ...


class EchoResponder:
    """Answers with the text it was given."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    async def __call__(self, text: str) -> str:
        if not text:
            return f"{self.prefix}(empty message)"
        return f"{self.prefix}{text}"
