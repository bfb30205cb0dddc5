"""
Context Assembler

Builds the system instructions and the text summary of an imported bank
statement that is appended to the user's message.

CRITICAL BOUNDARY: When a file is imported the model must answer from
the file alone. The summary therefore lists EVERY transaction with its
date, description and amount; nothing is cut to a "top N".
"""

import re
import unicodedata
from typing import Optional

from stark.models.agent import ImportedEntry, ImportedFile


SYSTEM_PROMPT = """Você é o STARK, o CFO Virtual da Starken Tecnologia.

## SUA PERSONALIDADE
Fale de forma direta, prática, sem enrolação. Tom informal mas profissional.

## QUANDO ANALISAR ARQUIVOS IMPORTADOS
- Use APENAS os dados do arquivo que estão no CONTEXTO
- NÃO use os dados internos do sistema
- Liste TODAS as transações, não faça "Top X"
- Organize por categoria e destinatário
- Inclua datas e valores de cada transação
- Seja DETALHADO e COMPLETO
"""

TOOLS_PROMPT = """
## FERRAMENTAS
Você pode consultar e alterar os lançamentos financeiros com as ferramentas disponíveis.
- Períodos sempre no formato YYYY-MM (ex.: 2025-12)
- Valores sempre positivos; use kind=expense para despesas e kind=income para receitas
- Para registrar vários lançamentos de uma vez (ex.: um extrato), use create_items_batch
- Nunca invente números: para totais e saldos, consulte list_items ou financial_summary
- Se uma ferramenta retornar erro, explique o problema ao usuário
"""

FILE_RULES = """
## ⚠️ ARQUIVO IMPORTADO ATIVO
O usuário importou um extrato bancário. REGRAS OBRIGATÓRIAS:
1. Use APENAS os dados do CONTEXTO DO ARQUIVO
2. IGNORE os dados internos do sistema
3. NÃO faça "Top 5" ou "Top 10" - liste TODAS as transações
4. Mantenha organização por CATEGORIA e DESTINATÁRIO
5. Inclua DATA e VALOR de cada transação
6. Seja DETALHADO e COMPLETO
"""

TRANSFERS = "Transferências/Pagamentos"

SEPARATOR = "═" * 63

# (category, keywords), first match wins
EXPENSE_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("Mercado/Supermercado", ("mercado", "market", "supermercado")),
    ("Combustível", ("posto", "combustivel", "gasolina")),
    ("Alimentação", ("restaurante", "lanchonete", "pizza", "burger", "cafe", "confeitaria")),
    ("Farmácia", ("drogasil", "farmacia", "drogaria")),
    ("Estacionamento", ("parking", "estacionamento")),
    ("Taxas Bancárias", ("taxa", "tarifa", "mensageria", "boleto")),
    ("Royalties Alpha", ("assessoria alpha", "alpha ltda")),
    ("Starken (interno)", ("starken",)),
]

RECIPIENT_PATTERN = re.compile(r"para (.+)$", re.IGNORECASE)


def _normalize(text: str) -> str:
    """Lowercase and strip accents, so 'Farmácia' matches 'farmacia'."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def categorize_expense(description: Optional[str]) -> str:
    text = _normalize(description or "")
    for category, keywords in EXPENSE_CATEGORIES:
        if any(keyword in text for keyword in keywords):
            return category
    return TRANSFERS


def transfer_recipient(description: Optional[str]) -> str:
    """Recipient of a transfer ('PIX enviado para Fulano' -> 'Fulano')."""
    match = RECIPIENT_PATTERN.search((description or "").strip())
    return match.group(1).strip() if match else "Outros"


def _money(value: float) -> str:
    return f"R$ {value:.2f}"


def _entry_line(entry: ImportedEntry) -> str:
    return f"{entry.date or 'S/D'} | {entry.description or 'N/A'} | {_money(entry.amount)}"


def _by_amount(entries: list[ImportedEntry]) -> list[ImportedEntry]:
    return sorted(entries, key=lambda e: e.amount, reverse=True)


def _group(entries: list[ImportedEntry], key) -> list[tuple[str, list[ImportedEntry]]]:
    """Group entries, largest group total first."""
    groups: dict[str, list[ImportedEntry]] = {}
    for entry in entries:
        groups.setdefault(key(entry), []).append(entry)
    return sorted(
        groups.items(),
        key=lambda pair: sum(e.amount for e in pair[1]),
        reverse=True,
    )


def build_file_context(imported_file: Optional[ImportedFile]) -> str:
    """
    Deterministic summary of an imported statement.

    Layout:
    1. Header with the caller's precomputed totals and the balance
    2. All incomes, largest first
    3. Expenses grouped by category, largest category first
    4. Transfers grouped by recipient
    5. Entries of unknown kind, if any

    Returns "" when there is no file.
    """
    if imported_file is None:
        return ""

    incomes = [e for e in imported_file.items if e.kind == "receita"]
    expenses = [e for e in imported_file.items if e.kind == "despesa"]
    others = [e for e in imported_file.items if e.kind not in ("receita", "despesa")]

    categorized = _group(expenses, lambda e: categorize_expense(e.description))
    transfers = [e for e in expenses if categorize_expense(e.description) == TRANSFERS]

    lines = [
        "",
        SEPARATOR,
        f"📎 ARQUIVO: {imported_file.filename}",
        SEPARATOR,
        "",
        "📊 RESUMO GERAL",
        f"• Receitas: {_money(imported_file.income_total)} ({len(incomes)} entradas)",
        f"• Despesas: {_money(imported_file.expense_total)} ({len(expenses)} saídas)",
        f"• Saldo: {_money(imported_file.balance)}",
        "",
        SEPARATOR,
        f"🟢 TODAS AS RECEITAS ({len(incomes)})",
        SEPARATOR,
    ]
    for position, entry in enumerate(_by_amount(incomes), start=1):
        lines.append(f"{position}. {_entry_line(entry)}")

    lines += ["", SEPARATOR, "🔴 DESPESAS POR CATEGORIA", SEPARATOR]
    for category, entries in categorized:
        if category == TRANSFERS:
            continue
        total = sum(e.amount for e in entries)
        lines.append("")
        lines.append(f"📁 {category.upper()}: {_money(total)} ({len(entries)} transações)")
        for entry in _by_amount(entries):
            lines.append(f"   • {_entry_line(entry)}")

    lines += ["", SEPARATOR, "💳 TRANSFERÊNCIAS/PAGAMENTOS POR DESTINATÁRIO", SEPARATOR]
    for recipient, entries in _group(transfers, lambda e: transfer_recipient(e.description)):
        total = sum(e.amount for e in entries)
        lines.append("")
        lines.append(f"👤 {recipient}: {_money(total)} ({len(entries)} pagamentos)")
        for entry in entries:
            lines.append(f"   • {_entry_line(entry)}")

    if others:
        lines += ["", SEPARATOR, f"⚪ OUTRAS TRANSAÇÕES ({len(others)})", SEPARATOR]
        for entry in others:
            lines.append(f"   • {_entry_line(entry)}")

    return "\n".join(lines) + "\n"


def build_user_message(message: str, file_context: str) -> str:
    if not file_context:
        return message
    return f"{message}\n\n---\nDADOS DO ARQUIVO IMPORTADO:{file_context}"


def build_system_prompt(tools_enabled: bool, has_file: bool) -> str:
    """
    System instructions for one exchange.

    With tools the instructions are fixed; the file rules are only
    appended in plain mode.
    """
    if tools_enabled:
        return SYSTEM_PROMPT + TOOLS_PROMPT
    if has_file:
        return SYSTEM_PROMPT + FILE_RULES
    return SYSTEM_PROMPT
