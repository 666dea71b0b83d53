"""CREATE FUNCTION and DROP FUNCTION builders."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from relq.ddl.columns import default_sql
from relq.pg_format import ident
from relq.query.base import Statement

ParameterMode = Literal["IN", "OUT", "INOUT", "VARIADIC"]
Volatility = Literal["VOLATILE", "STABLE", "IMMUTABLE"]
ParallelSafety = Literal["UNSAFE", "RESTRICTED", "SAFE"]

_NO_DEFAULT = object()


@dataclass
class FunctionParameter:
    name: str
    type: str
    default: Any = _NO_DEFAULT
    mode: ParameterMode = "IN"

    def to_sql(self) -> str:
        sql = "" if self.mode == "IN" else f"{self.mode} "
        sql += f"{ident(self.name)} {self.type}"
        if self.default is not _NO_DEFAULT:
            sql += f" DEFAULT {default_sql(self.default)}"
        return sql


class CreateFunctionBuilder(Statement):
    """Fluent CREATE FUNCTION builder.

    The body is wrapped in ``$$ ... $$``; one of :meth:`returns`,
    :meth:`returns_table` or :meth:`returns_setof` is required.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.parameters: list[FunctionParameter] = []
        self._returns: str | None = None
        self._returns_table: dict[str, str] | None = None
        self._returns_setof: str | None = None
        self._language = "plpgsql"
        self._body: str | None = None
        self._volatility: Volatility = "VOLATILE"
        self._security: Literal["INVOKER", "DEFINER"] = "INVOKER"
        self._parallel: ParallelSafety = "UNSAFE"
        self._cost: float | None = None
        self._rows: int | None = None
        self._strict = False
        self._leakproof = False
        self._or_replace = False

    def parameter(
        self, name: str, type: str, default: Any = _NO_DEFAULT, mode: ParameterMode = "IN"
    ) -> CreateFunctionBuilder:
        self.parameters.append(FunctionParameter(name, type, default, mode))
        return self

    def params(self, params: dict[str, str]) -> CreateFunctionBuilder:
        """Add ``IN`` parameters from a ``name -> type`` mapping."""
        for name, type_ in params.items():
            self.parameters.append(FunctionParameter(name, type_))
        return self

    def returns(self, type: str) -> CreateFunctionBuilder:
        self._returns = type
        return self

    def returns_table(self, columns: dict[str, str]) -> CreateFunctionBuilder:
        self._returns_table = dict(columns)
        return self

    def returns_setof(self, type: str) -> CreateFunctionBuilder:
        self._returns_setof = type
        return self

    def language(self, language: str) -> CreateFunctionBuilder:
        self._language = language
        return self

    def body(self, sql: str) -> CreateFunctionBuilder:
        self._body = sql.strip()
        return self

    def immutable(self) -> CreateFunctionBuilder:
        self._volatility = "IMMUTABLE"
        return self

    def stable(self) -> CreateFunctionBuilder:
        self._volatility = "STABLE"
        return self

    def volatile(self) -> CreateFunctionBuilder:
        self._volatility = "VOLATILE"
        return self

    def security_definer(self) -> CreateFunctionBuilder:
        self._security = "DEFINER"
        return self

    def security_invoker(self) -> CreateFunctionBuilder:
        self._security = "INVOKER"
        return self

    def parallel(self, safety: ParallelSafety) -> CreateFunctionBuilder:
        self._parallel = safety
        return self

    def strict(self) -> CreateFunctionBuilder:
        self._strict = True
        return self

    def leakproof(self) -> CreateFunctionBuilder:
        self._leakproof = True
        return self

    def cost(self, estimate: float) -> CreateFunctionBuilder:
        self._cost = estimate
        return self

    def rows(self, estimate: int) -> CreateFunctionBuilder:
        self._rows = estimate
        return self

    def or_replace(self) -> CreateFunctionBuilder:
        self._or_replace = True
        return self

    def _returns_sql(self) -> str:
        if self._returns_table:
            cols = ", ".join(f"{ident(n)} {t}" for n, t in self._returns_table.items())
            return f" RETURNS TABLE({cols})"
        if self._returns_setof:
            return f" RETURNS SETOF {self._returns_setof}"
        return f" RETURNS {self._returns}"

    def to_string(self) -> str:
        if not (self._returns or self._returns_table or self._returns_setof):
            raise self._missing(
                "return_type",
                "Use .returns(), .returns_table(), or .returns_setof().",
                message="Return type is required",
            )
        if not self._body:
            raise self._missing("body", "Use .body().", message="Function body is required")
        sql = "CREATE"
        if self._or_replace:
            sql += " OR REPLACE"
        sql += f" FUNCTION {ident(self.name)}({', '.join(p.to_sql() for p in self.parameters)})"
        sql += self._returns_sql()
        sql += f" LANGUAGE {self._language} {self._volatility}"
        if self._strict:
            sql += " STRICT"
        sql += f" SECURITY {self._security} PARALLEL {self._parallel}"
        if self._leakproof:
            sql += " LEAKPROOF"
        if self._cost is not None:
            sql += f" COST {self._cost}"
        if self._rows is not None:
            sql += f" ROWS {self._rows}"
        return sql + f" AS $${self._body}$$"


class DropFunctionBuilder(Statement):
    def __init__(self, name: str, parameter_types: list[str] | None = None) -> None:
        self.name = name
        self.parameter_types = parameter_types
        self._if_exists = False
        self._cascade = False

    def if_exists(self) -> DropFunctionBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropFunctionBuilder:
        self._cascade = True
        return self

    def to_string(self) -> str:
        sql = "DROP FUNCTION"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.name)}"
        if self.parameter_types:
            sql += f"({', '.join(self.parameter_types)})"
        if self._cascade:
            sql += " CASCADE"
        return sql
