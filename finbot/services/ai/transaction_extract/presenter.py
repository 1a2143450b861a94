"""Confirmation text shown to the user after an extraction."""

from __future__ import annotations

from .contracts import ExtractedTransaction

LOW_CONFIDENCE_PERCENT = 70

_DIRECTION_LABELS = {
    "expense": ("💸", "Egreso"),
    "income": ("💰", "Ingreso"),
    "transfer": ("🔄", "Transferencia"),
}

_METHOD_LABELS = {
    "rules": ("⚡", "Reglas"),
    "model": ("🤖", "IA"),
}


def format_guaranies(amount: int) -> str:
    """``50000`` → ``"₲50.000"`` (es-PY groups thousands with dots)."""
    return "₲" + f"{amount:,}".replace(",", ".")


def format_extracted_transaction(extraction: ExtractedTransaction) -> str:
    emoji, label = _DIRECTION_LABELS[extraction.direction]
    lines = [f"{emoji} {label}"]

    if extraction.amount:
        lines[0] += f": {format_guaranies(extraction.amount)}"
    else:
        lines[0] += " (monto no detectado)"

    if extraction.merchant:
        lines.append(f"🏪 Comercio: {extraction.merchant}")
    if extraction.category:
        lines.append(f"📁 Categoría: {extraction.category}")
    if extraction.notes:
        lines.append(f"📝 Notas: {extraction.notes}")

    method_emoji, method_label = _METHOD_LABELS[extraction.method]
    lines.append("")
    lines.append(f"{method_emoji} Detectado con: {method_label}")

    percent = round(extraction.confidence * 100)
    if percent < LOW_CONFIDENCE_PERCENT:
        lines.append(f"⚠️ Confianza: {percent}% (verificá los datos)")
    else:
        lines.append(f"✅ Confianza: {percent}%")

    return "\n".join(lines)


def build_confirmation_message(extraction: ExtractedTransaction) -> str:
    formatted = format_extracted_transaction(extraction)
    return (
        "✨ Detecté una transacción:\n\n"
        f"{formatted}\n\n"
        "¿Es correcto?\n\n"
        '✅ Responde "confirmar" para registrar\n'
        '❌ Responde "cancelar" para descartar\n'
        "✏️ O escribí correcciones"
    )
