"""Meal-editing state.

A meal is a plain dict ``{"meal_name", "items", "total_calories",
"total_protein", "total_carbs", "total_fat"}`` and an item is
``{"name", "quantity", "calories", "protein", "carbs", "fat"}`` plus, once it
has been rescaled, the base values it is scaled from. Every function here
returns new lists/dicts and keeps meal totals equal to the sum of its items.
"""

import copy
import math
import re

DEFAULT_MEAL_NAME = "Nova Refeição"
MACRO_FIELDS = ("protein", "carbs", "fat")
NUTRIENT_FIELDS = ("calories",) + MACRO_FIELDS
MAX_ITEMS_PER_MEAL = 60

# Units written glued to the number ("150g"); everything else gets a space.
COMPACT_UNITS = {"g", "kg", "mg", "ml", "l"}

_NUMBER_RE = re.compile(r"(\d+(?:[.,]\d+)?)")


def _as_number(value, fallback=0.0):
    if value in (None, ""):
        return fallback
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.search(str(value))
    if not match:
        return fallback
    try:
        return float(match.group(1).replace(",", "."))
    except ValueError:
        return fallback


def _round_macro(value) -> float:
    return round(float(value) * 10) / 10


def _format_amount(amount: float) -> str:
    if abs(amount - round(amount)) < 1e-9:
        return str(int(round(amount)))
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def parse_quantity(text: str | None) -> tuple[float | None, str]:
    raw = (text or "").strip()
    match = _NUMBER_RE.search(raw)
    if not match:
        return (None, raw)
    amount = float(match.group(1).replace(",", "."))
    unit = (raw[: match.start()] + raw[match.end() :]).strip()
    return (amount, unit)


def format_quantity(amount: float, unit: str | None) -> str:
    unit = (unit or "").strip()
    amount_text = _format_amount(amount)
    if not unit:
        return amount_text
    if unit.lower() in COMPACT_UNITS:
        return f"{amount_text}{unit}"
    return f"{amount_text} {unit}"


def normalize_item(raw: dict) -> dict | None:
    if not isinstance(raw, dict):
        return None
    name = str(raw.get("name") or "").strip()[:255]
    if not name:
        return None

    item = {
        "name": name,
        "quantity": str(raw.get("quantity") or "").strip()[:120],
        "calories": int(round(_as_number(raw.get("calories")))),
        "protein": _round_macro(_as_number(raw.get("protein"))),
        "carbs": _round_macro(_as_number(raw.get("carbs"))),
        "fat": _round_macro(_as_number(raw.get("fat"))),
    }
    if raw.get("base_quantity") is not None:
        item["base_quantity"] = _as_number(raw.get("base_quantity"), fallback=None)
        item["current_amount"] = _as_number(raw.get("current_amount"), fallback=item["base_quantity"])
        item["unit"] = str(raw.get("unit") or "")
        for field in NUTRIENT_FIELDS:
            item[f"base_{field}"] = _as_number(raw.get(f"base_{field}"), fallback=item[field])
    return item


def recalculate_totals(items: list[dict]) -> dict:
    totals = {"calories": 0, "protein": 0.0, "carbs": 0.0, "fat": 0.0}
    for item in items:
        totals["calories"] += int(round(_as_number(item.get("calories"))))
        for field in MACRO_FIELDS:
            totals[field] += _as_number(item.get(field))
    for field in MACRO_FIELDS:
        totals[field] = _round_macro(totals[field])
    return totals


def _with_totals(meal: dict) -> dict:
    totals = recalculate_totals(meal["items"])
    meal["total_calories"] = totals["calories"]
    meal["total_protein"] = totals["protein"]
    meal["total_carbs"] = totals["carbs"]
    meal["total_fat"] = totals["fat"]
    return meal


def build_meal(meal_name: str | None, items: list[dict]) -> dict:
    name = (meal_name or "").strip()[:255] or DEFAULT_MEAL_NAME
    return _with_totals({"meal_name": name, "items": list(items)})


def normalize_meals(payload) -> list[dict]:
    """Coerce AI or client JSON into meals whose totals match their items.

    Accepts ``{"meals": [...]}`` or a bare list and both ``mealName`` and
    ``meal_name`` spellings. Meals without any usable item are dropped.
    """
    raw_meals = payload.get("meals") if isinstance(payload, dict) else payload
    if not isinstance(raw_meals, list):
        return []

    meals = []
    for raw_meal in raw_meals:
        if not isinstance(raw_meal, dict):
            continue
        raw_items = raw_meal.get("items")
        if not isinstance(raw_items, list):
            continue
        items = [item for item in (normalize_item(row) for row in raw_items[:MAX_ITEMS_PER_MEAL]) if item]
        if not items:
            continue
        meals.append(build_meal(raw_meal.get("meal_name") or raw_meal.get("mealName"), items))
    return meals


def _ensure_base(item: dict) -> dict:
    if item.get("base_quantity") is not None or "base_calories" in item:
        return item
    amount, unit = parse_quantity(item.get("quantity"))
    item["base_quantity"] = amount
    item["current_amount"] = amount
    item["unit"] = unit
    for field in NUTRIENT_FIELDS:
        item[f"base_{field}"] = _as_number(item.get(field))
    return item


def scale_item(item: dict, new_amount: float) -> dict:
    scaled = _ensure_base(copy.deepcopy(item))
    base_quantity = scaled.get("base_quantity")
    if not base_quantity or base_quantity <= 0:
        raise ValueError("Item quantity has no numeric amount to scale from.")
    if new_amount is None or not math.isfinite(new_amount) or new_amount < 0:
        raise ValueError("New amount must be zero or positive.")

    ratio = float(new_amount) / float(base_quantity)
    scaled["current_amount"] = float(new_amount)
    scaled["quantity"] = format_quantity(float(new_amount), scaled.get("unit"))
    scaled["calories"] = int(round(scaled["base_calories"] * ratio))
    for field in MACRO_FIELDS:
        scaled[field] = _round_macro(scaled[f"base_{field}"] * ratio)
    return scaled


def _check_index(meals: list[dict], meal_index: int, item_index: int | None = None) -> None:
    if meal_index < 0 or meal_index >= len(meals):
        raise IndexError("Meal index out of range.")
    if item_index is not None and (item_index < 0 or item_index >= len(meals[meal_index]["items"])):
        raise IndexError("Item index out of range.")


def update_item_amount(meals: list[dict], meal_index: int, item_index: int, new_amount: float) -> list[dict]:
    _check_index(meals, meal_index, item_index)
    updated = copy.deepcopy(meals)
    meal = updated[meal_index]
    meal["items"][item_index] = scale_item(meal["items"][item_index], new_amount)
    _with_totals(meal)
    return updated


def delete_item(meals: list[dict], meal_index: int, item_index: int) -> list[dict]:
    _check_index(meals, meal_index, item_index)
    updated = copy.deepcopy(meals)
    meal = updated[meal_index]
    meal["items"] = [item for idx, item in enumerate(meal["items"]) if idx != item_index]
    if not meal["items"]:
        updated.pop(meal_index)
    else:
        _with_totals(meal)
    return updated


def merge_meals(current: list[dict], incoming: list[dict]) -> list[dict]:
    """Fold incoming meals into the draft: their items join the first meal."""
    merged = copy.deepcopy(current or [])
    for meal in copy.deepcopy(incoming or []):
        if merged:
            merged[0]["items"] = merged[0]["items"] + meal["items"]
            _with_totals(merged[0])
        else:
            merged.append(_with_totals(meal))
    return merged


def add_item(meals: list[dict], item: dict) -> list[dict]:
    updated = copy.deepcopy(meals or [])
    if updated:
        updated[0]["items"] = updated[0]["items"] + [item]
        _with_totals(updated[0])
    else:
        updated.append(build_meal(DEFAULT_MEAL_NAME, [item]))
    return updated


def registered_food_item(food) -> dict:
    serving = food.serving_size or ""
    amount, unit = parse_quantity(serving)
    item = {
        "name": food.name,
        "quantity": serving,
        "calories": int(food.calories or 0),
        "protein": float(food.protein or 0),
        "carbs": float(food.carbs or 0),
        "fat": float(food.fat or 0),
        "base_quantity": amount,
        "current_amount": amount,
        "unit": unit,
    }
    for field in NUTRIENT_FIELDS:
        item[f"base_{field}"] = item[field]
    return item


def meal_totals_for_storage(items: list[dict]) -> dict:
    totals = recalculate_totals(items)
    return {
        "total_calories": max(0, int(round(totals["calories"]))),
        "total_protein": max(0, int(round(totals["protein"]))),
        "total_carbs": max(0, int(round(totals["carbs"]))),
        "total_fat": max(0, int(round(totals["fat"]))),
    }
