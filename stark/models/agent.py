"""
Request and result models for one /agent exchange.

The wire format uses the frontend's field names (camelCase and the
Portuguese statement fields: tipo, data, descricao, valor, receitas,
despesas). Python code uses the English attribute names.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from stark.models.conversation import ConversationTurn, TokenUsage


class ImportedEntry(BaseModel):
    """One transaction from an imported bank statement."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: str = Field(
        default="indefinido",
        alias="tipo",
        description="receita, despesa or indefinido"
    )
    date: Optional[str] = Field(default=None, alias="data")
    description: Optional[str] = Field(default=None, alias="descricao")
    amount: float = Field(default=0.0, alias="valor")


class ImportedFile(BaseModel):
    """
    A bank statement imported by the user for this request only.

    Never persisted. Totals are precomputed by the caller.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    filename: str = Field(default="arquivo")
    items: list[ImportedEntry] = Field(default_factory=list)
    income_total: float = Field(default=0.0, alias="receitas")
    expense_total: float = Field(default=0.0, alias="despesas")

    @property
    def balance(self) -> float:
        return self.income_total - self.expense_total


class AgentRequest(BaseModel):
    """Body of POST /agent."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: Optional[str] = None
    conversation_history: list[ConversationTurn] = Field(
        default_factory=list,
        alias="conversationHistory",
    )
    imported_file: Optional[ImportedFile] = Field(
        default=None,
        alias="importedFile",
    )


class AgentResult(BaseModel):
    """Outcome of one exchange, before it is rendered as JSON."""

    response: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str
    elapsed_ms: int = Field(ge=0)
    tools_used: int = Field(default=0, ge=0)
    truncated: bool = Field(
        default=False,
        description="True when the tool-use cap cut the loop short"
    )

    def to_response(self) -> dict:
        return {
            "success": True,
            "response": self.response,
            "usage": self.usage.model_dump(),
            "model": self.model,
            "elapsed": self.elapsed_ms,
            "toolsUsed": self.tools_used,
            "truncated": self.truncated,
        }
