"""
Tool Registry

The fixed, ordered list of tools the model may call. Each tool is pure
data: a name, a description that steers the model's choice, and the
pydantic argument model from stark.models.tools.

Adding a tool = one argument model + one descriptor here + one handler
in the executor.
"""

from typing import Optional

from stark.models.tools import (
    CreateItemArgs,
    CreateItemsBatchArgs,
    DeleteItemArgs,
    EditItemArgs,
    FinancialSummaryArgs,
    ListItemsArgs,
    ToolDescriptor,
    UpdateStatusArgs,
)


TOOL_REGISTRY: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name="create_item",
        description=(
            "Cria um lançamento (despesa ou receita) no período informado. "
            "Use para registrar um único gasto ou recebimento."
        ),
        args_model=CreateItemArgs,
    ),
    ToolDescriptor(
        name="create_items_batch",
        description=(
            "Cria vários lançamentos de uma vez. Prefira esta ferramenta para importar "
            "um extrato: cada lançamento é processado de forma independente e o "
            "resultado informa sucesso ou erro de cada um."
        ),
        args_model=CreateItemsBatchArgs,
    ),
    ToolDescriptor(
        name="update_status",
        description=(
            "Altera o status de um lançamento (ex.: marcar despesa como Paid ou "
            "receita como Received), opcionalmente com a data de pagamento."
        ),
        args_model=UpdateStatusArgs,
    ),
    ToolDescriptor(
        name="edit_item",
        description=(
            "Edita nome, valor ou categoria de um lançamento. Informe apenas os campos "
            "que devem mudar."
        ),
        args_model=EditItemArgs,
    ),
    ToolDescriptor(
        name="delete_item",
        description="Exclui um lançamento do período.",
        args_model=DeleteItemArgs,
    ),
    ToolDescriptor(
        name="list_items",
        description=(
            "Lista os lançamentos de um período com totais de receitas, despesas e saldo."
        ),
        args_model=ListItemsArgs,
    ),
    ToolDescriptor(
        name="financial_summary",
        description=(
            "Resumo financeiro do período: receitas, despesas, saldo, margem, totais "
            "por categoria e quantidade de lançamentos."
        ),
        args_model=FinancialSummaryArgs,
    ),
)

_BY_NAME = {tool.name: tool for tool in TOOL_REGISTRY}


def get_tool(name: str) -> Optional[ToolDescriptor]:
    """Look up a tool by name."""
    return _BY_NAME.get(name)


def tool_names() -> list[str]:
    return [tool.name for tool in TOOL_REGISTRY]
