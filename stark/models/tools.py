"""
Tool Argument Models

DESIGN DECISION: The argument model is the single source of truth.
The JSON schema sent to the model is generated from it, and the
validator parses arguments with it, so what the model is told and what
the executor accepts cannot drift apart.
"""

from datetime import date
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, WithJsonSchema

from stark.models.ledger import PERIOD_PATTERN, ItemKind, ItemStatus


def tool_input_schema(model: type[BaseModel]) -> dict:
    """
    JSON schema for a tool's arguments, flattened for model consumption.

    Resolves $refs, drops titles and null defaults, and collapses
    Optional[X] (anyOf X | null) to X.
    """
    schema = model.model_json_schema()
    defs = schema.pop("$defs", {})

    def resolve(node):
        if isinstance(node, list):
            return [resolve(n) for n in node]
        if not isinstance(node, dict):
            return node

        node = dict(node)
        for combinator in ("anyOf", "allOf"):
            if combinator in node:
                options = [o for o in node[combinator] if o.get("type") != "null"]
                if len(options) == 1:
                    del node[combinator]
                    node = {**options[0], **node}
        if "$ref" in node:
            target = defs[node.pop("$ref").rsplit("/", 1)[-1]]
            node = {**target, **node}
            return resolve(node)

        cleaned = {}
        for key, value in node.items():
            if key == "title" and isinstance(value, str):
                continue
            if key == "default" and value is None:
                continue
            if key == "properties":
                cleaned[key] = {name: resolve(prop) for name, prop in value.items()}
            else:
                cleaned[key] = resolve(value)
        return cleaned

    return resolve(schema)


# =============================================================================
# ARGUMENT MODELS
# =============================================================================

class ToolArguments(BaseModel):
    """Base for tool arguments. Unknown keys from the model are ignored."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


Period = Annotated[
    str,
    Field(pattern=PERIOD_PATTERN, description="Período no formato YYYY-MM (ex.: 2025-12)"),
]


class CreateItemArgs(ToolArguments):
    period: Period
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Nome do lançamento (ex.: 'Posto Ipiranga')"
    )
    amount: float = Field(
        ...,
        ge=0,
        description="Valor em reais, sempre positivo"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Categoria (ex.: Combustível, Alimentação, Serviços)"
    )
    kind: ItemKind = Field(
        ...,
        description="expense para despesa, income para receita"
    )
    status: Optional[ItemStatus] = Field(
        default=None,
        description=(
            "Despesa: Payable ou Paid. Receita: Receivable ou Received. "
            "Se omitido, fica em aberto (Payable/Receivable)."
        )
    )
    due_date: Optional[date] = Field(
        default=None,
        description="Data de vencimento (YYYY-MM-DD)"
    )
    settlement_date: Optional[date] = Field(
        default=None,
        description="Data de pagamento ou recebimento (YYYY-MM-DD)"
    )


class CreateItemsBatchArgs(ToolArguments):
    # Entries are validated one by one by the executor so that a bad
    # entry fails alone; the schema still shows the model their shape.
    items: Annotated[
        list[dict[str, Any]],
        WithJsonSchema({
            "type": "array",
            "description": "Lançamentos a criar, cada um no formato de create_item",
            "items": tool_input_schema(CreateItemArgs),
        }),
    ]


class ItemKeyArgs(ToolArguments):
    period: Period
    kind: ItemKind = Field(
        ...,
        description="expense para despesa, income para receita"
    )
    item_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Nome exato do lançamento"
    )


class UpdateStatusArgs(ItemKeyArgs):
    new_status: ItemStatus = Field(
        ...,
        description="Despesa: Payable ou Paid. Receita: Receivable ou Received."
    )
    settlement_date: Optional[date] = Field(
        default=None,
        description="Data de pagamento ou recebimento (YYYY-MM-DD)"
    )


class EditItemArgs(ItemKeyArgs):
    new_name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=200,
        description="Novo nome"
    )
    new_amount: Optional[float] = Field(
        default=None,
        ge=0,
        description="Novo valor em reais"
    )
    new_category: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Nova categoria"
    )


class DeleteItemArgs(ItemKeyArgs):
    pass


View = Literal["raw", "reconciled"]


class ListItemsArgs(ToolArguments):
    period: Period
    kind: Literal["expense", "income", "all"] = Field(
        default="all",
        description="Filtrar por tipo; all traz despesas e receitas"
    )
    view: View = Field(
        default="raw",
        description=(
            "raw: apenas lançamentos gravados. reconciled: inclui a base do período "
            "com alterações, status e exclusões aplicados."
        )
    )


class FinancialSummaryArgs(ToolArguments):
    period: Period
    view: View = Field(
        default="raw",
        description="raw ou reconciled, como em list_items"
    )


# =============================================================================
# DESCRIPTORS
# =============================================================================

class ToolDescriptor(BaseModel):
    """A tool as declared to the model."""
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    args_model: type[ToolArguments]

    @property
    def input_schema(self) -> dict:
        return tool_input_schema(self.args_model)

    def to_anthropic(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

