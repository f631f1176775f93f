from __future__ import annotations

from typing import Iterable

from merval_board.schemas.quote import ApiHealth, InstrumentView

_LIMITED_ERROR_COUNT = 3

_STATUS_MESSAGES: dict[str, str] = {
    "limited": "Algunos datos no disponibles",
    "error": "Problemas con la API",
}


def classify_api_health(error_count: int, total: int) -> ApiHealth:
    """Classify one finished batch; majority check first, then the absolute count."""
    if error_count > total / 2:
        return "error"
    if error_count > _LIMITED_ERROR_COUNT:
        return "limited"
    return "ok"


def health_status_message(health: ApiHealth) -> str | None:
    return _STATUS_MESSAGES.get(health)


def count_unavailable(views: Iterable[InstrumentView]) -> int:
    return sum(1 for v in views if not v.loading and v.price is None)


def count_stocks_with_data(views: Iterable[InstrumentView]) -> int:
    return sum(1 for v in views if v.price is not None)


def data_percentage(views: list[InstrumentView]) -> float:
    if not views:
        return 0.0
    return count_stocks_with_data(views) / len(views) * 100
