# app/utils/analysis.py
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Sequence
import json
import logging

import httpx

from app.core.config import settings
from app.models.transaction import Transaction, TransactionType

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
Você é um analista financeiro especializado em finanças para casais. Crie um
relatório de saúde financeira profissional, detalhado e encorajador para o mês
informado, baseado apenas nas transações fornecidas.

Responda somente com HTML usando h3, h4, p, ul, ol, li e b, nesta ordem de seções:
- Resumo Executivo
- Fluxo de Caixa Mensal (receita total, despesa total, saldo líquido, taxa de poupança)
- Detalhamento das Despesas (todas as categorias com valor e porcentagem)
- Progresso das Metas (Caixinhas)
- Insights e Recomendações Práticas (2-3 itens)
"""

def _transactions_payload(transactions: Sequence[Transaction]) -> List[Dict]:
    return [
        {
            "date": tx.date.date().isoformat(),
            "description": tx.description,
            "amount": str(tx.amount),
            "type": tx.type.value,
            "category": tx.category,
            "goal_movement": tx.goal_movement.value if tx.goal_movement else None,
            "installments": tx.total_installments,
        }
        for tx in transactions
    ]

def _fmt(value: Decimal) -> str:
    return f"R$ {value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")

def summary_html(month_label: str, transactions: Sequence[Transaction]) -> str:
    """Deterministic monthly summary used when no AI provider is configured."""
    income = Decimal("0")
    expense = Decimal("0")
    saved = Decimal("0")
    by_category: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))

    for tx in transactions:
        if tx.type == TransactionType.income:
            income += tx.amount
        elif tx.type == TransactionType.expense:
            expense += tx.amount
            by_category[tx.category] += tx.amount
        elif tx.goal_movement is not None and tx.goal_movement.value == "deposit":
            saved += tx.amount

    net = income - expense
    savings_rate = (saved / income * 100) if income > 0 else Decimal("0")

    parts = [
        f"<h3>Análise Financeira de {month_label}</h3>",
        "<h4>💰 Fluxo de Caixa Mensal</h4>",
        "<ul>",
        f"<li><b>Receita Total:</b> {_fmt(income)}</li>",
        f"<li><b>Despesa Total:</b> {_fmt(expense)}</li>",
        f"<li><b>Saldo Líquido:</b> {_fmt(net)}</li>",
        f"<li><b>Taxa de Poupança:</b> {savings_rate:.1f}%</li>",
        "</ul>",
        "<h4>📊 Detalhamento das Despesas</h4>",
    ]
    if by_category:
        parts.append("<ul>")
        for category, total in sorted(by_category.items(), key=lambda item: item[1], reverse=True):
            share = total / expense * 100 if expense > 0 else Decimal("0")
            parts.append(f"<li><b>{category}:</b> {_fmt(total)} ({share:.1f}%)</li>")
        parts.append("</ul>")
    else:
        parts.append("<p>Nenhuma despesa registrada neste mês.</p>")
    return "".join(parts)

async def generate_analysis_html(month_label: str, transactions: Sequence[Transaction]) -> str:
    """
    Ask OpenRouter for the monthly analysis. Falls back to ``summary_html``
    when no API key is configured or the provider does not answer.
    """
    if not settings.OPENROUTER_API_KEY:
        logger.info("OpenRouter API key not configured. Using plain monthly summary.")
        return summary_html(month_label, transactions)

    user_prompt = (
        f"Mês do relatório: {month_label}\n\n"
        f"Transações do mês (JSON):\n{json.dumps(_transactions_payload(transactions), ensure_ascii=False)}"
    )

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                settings.OPENROUTER_URL,
                headers={
                    "Authorization": f"Bearer {settings.OPENROUTER_API_KEY}",
                    "Content-Type": "application/json",
                    "HTTP-Referer": settings.FRONTEND_URL,
                    "X-Title": f"{settings.APP_NAME} Monthly Report",
                },
                json={
                    "model": settings.OPENROUTER_MODEL,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    "temperature": 0.4,
                    "max_tokens": 2048,
                },
                timeout=60.0,
            )
    except httpx.HTTPError as e:
        logger.error(f"OpenRouter request failed: {str(e)}")
        return summary_html(month_label, transactions)

    if response.status_code != 200:
        logger.warning(f"OpenRouter API call failed with status {response.status_code}: {response.text}")
        return summary_html(month_label, transactions)

    content = response.json().get("choices", [{}])[0].get("message", {}).get("content", "")
    content = content.strip()
    # Models sometimes wrap the HTML in a markdown fence
    if content.startswith("```"):
        content = content.strip("`")
        if content.lower().startswith("html"):
            content = content[4:]
        content = content.strip()
    if not content:
        logger.warning("OpenRouter returned an empty analysis. Using plain monthly summary.")
        return summary_html(month_label, transactions)
    return content
