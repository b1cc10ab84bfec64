from __future__ import annotations

import unicodedata
from datetime import date

# Representação canônica: dia ISO (1=segunda ... 7=domingo).
# Na borda aceitamos nomes em inglês, espanhol e português, com ou sem acento,
# abreviações de três letras e o próprio número ISO.
CANONICAL_KEYS = {
    1: "monday",
    2: "tuesday",
    3: "wednesday",
    4: "thursday",
    5: "friday",
    6: "saturday",
    7: "sunday",
}

_ALIASES: dict[str, int] = {}
for _iso, _names in {
    1: ("monday", "lunes", "segunda", "segunda-feira"),
    2: ("tuesday", "martes", "terca", "terca-feira"),
    3: ("wednesday", "miercoles", "quarta", "quarta-feira"),
    4: ("thursday", "jueves", "quinta", "quinta-feira"),
    5: ("friday", "viernes", "sexta", "sexta-feira"),
    6: ("saturday", "sabado"),
    7: ("sunday", "domingo"),
}.items():
    for _name in _names:
        _ALIASES[_name] = _iso
        _ALIASES.setdefault(_name[:3], _iso)


def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_weekday(value: str | int) -> int:
    """Converte qualquer grafia aceita no dia ISO. ValueError se desconhecido."""
    if isinstance(value, bool):
        raise ValueError(f"Dia da semana inválido: {value!r}")
    if isinstance(value, int):
        if 1 <= value <= 7:
            return value
        raise ValueError(f"Dia da semana inválido: {value!r}")
    folded = _fold(value)
    if folded.isdigit():
        return normalize_weekday(int(folded))
    try:
        return _ALIASES[folded]
    except KeyError:
        raise ValueError(f"Dia da semana inválido: {value!r}") from None


def weekday_of(d: date) -> int:
    return d.isoweekday()


def weekday_key(iso: int) -> str:
    return CANONICAL_KEYS[iso]
