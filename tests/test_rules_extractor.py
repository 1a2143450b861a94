"""Rules extractor: amounts, directions, merchants, categories, confidence."""

import json

import pytest

from finbot.services.ai.transaction_extract.contracts import ExtractedTransaction
from finbot.services.ai.transaction_extract.rules import (
    calculate_confidence,
    extract_amount,
    extract_direction,
    extract_merchant,
    extract_with_rules,
    is_rules_extraction_valid,
)
from finbot.services.ai.transaction_extract.vocabulary import (
    VocabularyError,
    get_vocabulary,
    load_vocabulary,
    normalize,
    parse_vocabulary,
)


def test_grocery_purchase_with_slang_amount():
    result = extract_with_rules("gasté 50 mil en biggie")

    assert result.amount == 50000
    assert result.direction == "expense"
    assert result.merchant == "biggie"
    assert result.category == "Compras"
    assert result.method == "rules"
    assert result.confidence >= 0.7
    assert result.original_message == "gasté 50 mil en biggie"
    assert is_rules_extraction_valid(result, 0.7)


def test_fuel_with_bare_small_number():
    result = extract_with_rules("cargué nafta 120")

    assert result.amount == 120000
    assert result.direction == "expense"
    assert result.category == "Transporte"


def test_salary_deposit_without_amount_is_low_confidence():
    result = extract_with_rules("me depositaron el sueldo")

    assert result.amount is None
    assert result.direction == "income"
    assert result.confidence < 0.7
    assert not is_rules_extraction_valid(result, 0.7)


@pytest.mark.parametrize(
    "message,expected",
    [
        ("pagué 120 lucas de nafta", 120000),
        ("compré en el super 75k", 75000),
        ("1.5 mil de chipa", 1500),
        ("2,5k en el bus", 2500),
        ("gasté 2 miles", 2000),
        ("cobré 3500000", 3500000),
        ("pagué 50.000 de luz", 50000),
        ("me entraron 2 millones", 2000000),
        ("uber al aeropuerto 45 lucas", 45000),
        ("hola que tal", None),
        ("compré en el 7eleven", None),
        ("pagué el plan 4g de tigo", None),
        ("compré 2x1 en biggie", None),
        ("cargué 20 litros de nafta", None),
        ("pagué 3 cuotas", None),
    ],
)
def test_amount_detection(message, expected):
    assert extract_amount(message) == expected


def test_slang_multiplier_wins_over_bare_number():
    # The slang multiplier is tried before the bare small-number rule.
    assert extract_amount("gasté 50 mil y 3 empanadas") == 50000


@pytest.mark.parametrize(
    "message,direction,explicit",
    [
        ("gasté 10 mil", "expense", True),
        ("pagué la cuenta", "expense", True),
        ("salí a cenar", "expense", True),
        ("cobré mi salario", "income", True),
        ("recibí 100 mil", "income", True),
        ("ingreso de 5 millones", "income", True),
        ("transferí 200 mil a Juan", "transfer", True),
        ("le mandé 30 mil a mi vieja", "transfer", True),
        ("biggie 50 mil", "expense", False),
    ],
)
def test_direction_detection(message, direction, explicit):
    assert extract_direction(message) == (direction, explicit)


def test_expense_family_checked_before_income():
    assert extract_direction("gasté el sueldo entero")[0] == "expense"


@pytest.mark.parametrize(
    "message,merchant",
    [
        ("gasté 35 en netflix", "netflix"),
        ("compré en el super", "super"),
        ("pagué 50 mil en la farmacia y en el super", "farmacia"),
        ("almuerzo del bar de la esquina", "bar"),
        ("gasté 50 mil", None),
    ],
)
def test_merchant_detection(message, merchant):
    assert extract_merchant(message) == merchant


def test_merchant_keeps_accented_letters():
    assert extract_merchant("pagué 20 mil en la panadería") == "panadería"


def test_category_from_merchant_ignores_accents():
    result = extract_with_rules("pagué 20 mil en la panadería")
    assert result.category == "Comida"


def test_category_from_keyword_without_merchant():
    result = extract_with_rules("almuerzo 35 mil")
    assert result.category == "Comida"
    assert result.merchant is None


def test_nothing_detected_scores_zero():
    result = extract_with_rules("hola que tal")

    assert result.amount is None
    assert result.direction == "expense"
    assert result.category is None
    assert result.merchant is None
    assert result.confidence == 0.0


def test_direction_bonus_requires_explicit_keyword():
    # Pins the scoring: the +0.2 direction bonus is only awarded for a
    # matched keyword family, never for the default "expense".
    assert calculate_confidence(None, False, None, None) == 0.0
    assert calculate_confidence(None, True, None, None) == 0.2
    assert extract_with_rules("50 mil en biggie").confidence == 0.8
    assert extract_with_rules("gasté 50 mil en biggie").confidence == 1.0


def test_confidence_is_clamped_and_in_range():
    for message in (
        "gasté 50 mil en biggie",
        "cargué nafta 120",
        "me depositaron el sueldo",
        "transferí 200 mil a Juan",
        "???",
    ):
        result = extract_with_rules(message)
        assert 0.0 <= result.confidence <= 1.0
        assert result.direction in {"expense", "income", "transfer"}


def test_extraction_is_idempotent():
    first = extract_with_rules("pagué 120 lucas de nafta")
    second = extract_with_rules("pagué 120 lucas de nafta")
    assert first.model_dump_json() == second.model_dump_json()


def test_validity_requires_amount():
    no_amount = ExtractedTransaction(confidence=0.9)
    assert not is_rules_extraction_valid(no_amount, 0.7)


def test_validity_uses_configured_threshold(monkeypatch):
    from finbot.core.config import get_settings

    tx = ExtractedTransaction(amount=1000, confidence=0.6)
    monkeypatch.setenv("AI_MIN_CONFIDENCE_RULES", "0.5")
    get_settings.cache_clear()
    assert is_rules_extraction_valid(tx)


def test_normalize_strips_diacritics():
    assert normalize("Médico Clínica ÑANDÚ") == "medico clinica nandu"


def test_bundled_vocabulary_loads():
    vocab = get_vocabulary()
    assert vocab.category_for_merchant("Biggie Express") == "Compras"
    assert vocab.category_for_merchant("Copetrol") == "Transporte"
    assert vocab.category_for_merchant("zzz") is None


def test_external_vocabulary_overrides_bundled(tmp_path, monkeypatch):
    from finbot.core.config import get_settings

    path = tmp_path / "vocab.json"
    path.write_text(
        json.dumps(
            {
                "merchants": {"kiosko don pepe": "Comida"},
                "keywords": [{"pattern": "gimnasio", "category": "Salud"}],
            }
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("AI_VOCABULARY_PATH", str(path))
    get_settings.cache_clear()
    get_vocabulary.cache_clear()

    assert extract_with_rules("gasté 10 mil en kiosko don pepe").category == "Comida"
    assert extract_with_rules("cuota del gimnasio 150 mil").category == "Salud"
    assert extract_with_rules("gasté 50 mil en biggie").category is None


def test_explicit_vocabulary_argument():
    vocab = parse_vocabulary({"merchants": {"shopping": "Compras"}, "keywords": []})
    result = extract_with_rules("gasté 180 mil en el shopping", vocab)
    assert result.category == "Compras"


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"merchants": []},
        {"keywords": {}},
        {"merchants": {"x": "Pizza"}},
        {"keywords": [{"pattern": "("}]},
        {"keywords": [{"pattern": "(", "category": "Comida"}]},
    ],
)
def test_invalid_vocabulary_rejected(data):
    with pytest.raises(VocabularyError):
        parse_vocabulary(data)


def test_load_vocabulary_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_vocabulary(str(tmp_path / "missing.json"))
