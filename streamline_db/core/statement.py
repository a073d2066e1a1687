"""Immutable SQL text plus positional parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Sequence

from .types import PositionalParams

if TYPE_CHECKING:
    from .contracts import ParameterBinderPort


@dataclass(frozen=True)
class Statement:
    """SQL text with `?` placeholders and the values bound to them, in order.

    A statement without parameters is "simple" and is executed as plain text;
    anything else goes through a prepared, parameterised execute.
    """

    sql: str
    params: PositionalParams = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.sql, str):
            object.__setattr__(self, "sql", str(self.sql))
        if self.params is None:
            object.__setattr__(self, "params", ())
        elif not isinstance(self.params, tuple):
            if isinstance(self.params, (str, bytes)) or not isinstance(self.params, Sequence):
                raise TypeError("Statement params must be a sequence of values.")
            object.__setattr__(self, "params", tuple(self.params))

    @classmethod
    def of(cls, sql: str, *params: Any) -> Statement:
        """Build a statement from variadic parameters."""

        return cls(sql, params)

    @property
    def simple(self) -> bool:
        return not self.params

    def format(self, binder: ParameterBinderPort, placeholder: str = "?") -> Statement:
        """Inline parameters as SQL literals for logging.

        Each placeholder is replaced, in order, by `binder.format(value)`.
        Values the binder cannot render keep their placeholder and are
        returned as the params of the new statement.

        IMPORTANT: the result is for logging and debugging only. Literals are
        not escaped against SQL injection; never execute it.
        """

        parts = self.sql.split(placeholder)
        if len(parts) == 1:
            return Statement(self.sql, self.params)

        residual: List[Any] = []
        out: List[str] = [parts[0]]
        for i, part in enumerate(parts[1:]):
            if i < len(self.params):
                value = self.params[i]
                literal = binder.format(value)
                if literal is None:
                    out.append(placeholder)
                    residual.append(value)
                else:
                    out.append(literal)
            else:
                out.append(placeholder)
            out.append(part)

        # extra params with no placeholder stay unrendered
        residual.extend(self.params[len(parts) - 1 :])
        return Statement("".join(out), tuple(residual))

    def __str__(self) -> str:
        return self.sql
