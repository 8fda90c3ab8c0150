"""Typed parameter extraction for registered methods.

Each method declares the parameters it reads from the request's `params` object.
The declarations are turned into a pydantic model once, at registration time, and
every call validates the loose parameter bag against it.
"""

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from a2a_tasks.exceptions import InvalidParamsError

# The value kinds a parameter can be coerced to. `Any` passes structured values through untouched.
ParamType = type[str] | type[int] | type[bool] | Any

Handler = Callable[..., Awaitable[Any]]


@dataclass(frozen=True)
class Param:
    """One named parameter of a method.

    Attributes:
        name: Key in the request's `params` object.
        type: `str`, `int`, `bool` or `Any`.
        required: Missing required parameters are an invalid-params error.
        default: Value used when an optional parameter is absent.
        keyword: Keyword the handler receives the value under; defaults to `name`.
    """

    name: str
    type: ParamType = str
    required: bool = False
    default: Any = None
    keyword: str | None = None

    @property
    def argument(self) -> str:
        return self.keyword or self.name


class ArgModelBase(BaseModel):
    """A model representing the arguments to a handler."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        coerce_numbers_to_str=True,
        populate_by_name=True,
        extra="ignore",
    )

    def model_dump_one_level(self) -> dict[str, Any]:
        """Return a dict of the model's fields, one level deep.

        That is, sub-models etc are not dumped - they are kept as pydantic models.
        """
        kwargs: dict[str, Any] = {}
        for field_name in self.__class__.model_fields.keys():
            kwargs[field_name] = getattr(self, field_name)
        return kwargs


def _model_name(method: str) -> str:
    words = method.replace("/", " ").replace("_", " ").replace("-", " ").split()
    return "".join(word[:1].upper() + word[1:] for word in words) + "Arguments"


def build_arg_model(method: str, params: Sequence[Param]) -> type[ArgModelBase]:
    fields: dict[str, Any] = {}
    for param in params:
        if param.argument in fields:
            raise ValueError(f"Parameter {param.argument!r} declared twice for {method}")
        if param.required:
            fields[param.argument] = (param.type, Field(..., alias=param.name))
        else:
            fields[param.argument] = (param.type | None, Field(param.default, alias=param.name))
    return create_model(_model_name(method), __base__=ArgModelBase, **fields)


@dataclass(frozen=True)
class HandlerDescriptor:
    """A registered method: its handler plus what is needed to call it."""

    method: str
    fn: Handler
    arg_model: type[ArgModelBase]
    streaming: bool = False

    def parse(self, params: Any) -> dict[str, Any]:
        """Validate `params` and return the handler's keyword arguments.

        Raises:
            InvalidParamsError: If `params` is not an object or does not match the declaration.
        """
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            raise InvalidParamsError(f"Params for {self.method} must be an object")
        try:
            arguments = self.arg_model.model_validate(params)
        except ValidationError as e:
            raise InvalidParamsError(
                f"Invalid params for {self.method}",
                data=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e
        return arguments.model_dump_one_level()

    async def invoke(self, params: Any) -> Any:
        return await self.fn(**self.parse(params))


def describe(
    method: str,
    fn: Handler,
    params: Sequence[Param] = (),
    *,
    streaming: bool = False,
) -> HandlerDescriptor:
    return HandlerDescriptor(method=method, fn=fn, arg_model=build_arg_model(method, params), streaming=streaming)
