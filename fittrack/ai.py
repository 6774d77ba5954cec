import json
import re
from typing import Sequence

from flask import current_app
from openai import OpenAI, RateLimitError

from fittrack.meals import normalize_meals

QUOTA_EXHAUSTED_MESSAGE = (
    "O limite de uso da IA foi atingido em todos os modelos disponíveis. "
    "Por favor, tente novamente mais tarde."
)
NOT_CONFIGURED_MESSAGE = "A chave da API de IA não está configurada."
NO_JSON_MESSAGE = "Não foi possível interpretar a resposta da IA. Tente descrever a refeição novamente."
NO_MODELS_MESSAGE = "Nenhum modelo de IA está configurado."


class FoodParseError(RuntimeError):
    pass


class AIQuotaExceededError(FoodParseError):
    pass


def is_quota_error(exc: Exception) -> bool:
    if isinstance(exc, RateLimitError):
        return True
    text = str(exc)
    return "429" in text or "RESOURCE_EXHAUSTED" in text


def _extract_json_object(raw_text: str) -> dict | None:
    text = (raw_text or "").strip()
    if not text:
        return None

    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def build_food_prompt(
    raw_text: str,
    history: Sequence[dict] | None = None,
    reference_lines: Sequence[str] | None = None,
    language: str = "Portuguese (PT-BR)",
) -> str:
    history_text = "\n".join(
        f"{turn.get('role', 'user')}: {turn.get('content', '')}"
        for turn in (history or [])
        if isinstance(turn, dict)
    )
    if reference_lines:
        reference_text = "\n".join(f"- {line}" for line in reference_lines)
    else:
        reference_text = "- (none)"

    return (
        "Analyze the following food consumption text and extract the meals, items, calories, "
        "and macros (protein, carbs, fat).\n"
        f'Text: "{raw_text}"\n\n'
        "Current history of this conversation:\n"
        f"{history_text or '(empty)'}\n\n"
        "Reference data (use these values if the food matches, prioritizing them over general estimates):\n"
        f"{reference_text}\n\n"
        "Rules for data normalization:\n"
        '1. Prettify and normalize: convert all names to Title Case (e.g. "lanche da tarde" -> "Lanche da Tarde").\n'
        '2. Canonical names: use standard food names and correct typos (e.g. "frango grelhad" -> "Frango Grelhado").\n'
        f"3. Language: keep all names in {language}.\n\n"
        "Return the result as a JSON object with the following structure:\n"
        '{"meals": [{"meal_name": "string", "items": [{"name": "string", "quantity": "string", '
        '"calories": number, "protein": number, "carbs": number, "fat": number}], '
        '"total_calories": number, "total_protein": number, "total_carbs": number, "total_fat": number}]}\n\n'
        "The output must be ONLY the JSON object, no markdown, no explanation.\n"
        "Separate by meal if multiple are mentioned.\n"
        "Estimate calories and macros for each item based on typical values for the given portion.\n"
        "Ensure the meal totals are the sum of its items."
    )


def _generate_text(client: OpenAI, model: str, prompt: str) -> str:
    response = client.responses.create(model=model, input=prompt)
    return response.output_text or ""


def parse_food(
    raw_text: str,
    history: Sequence[dict] | None = None,
    reference_lines: Sequence[str] | None = None,
) -> dict:
    """Ask the model for meals in ``raw_text`` and return ``{"meals": [...]}``.

    Models are tried in the configured order; only quota errors move on to
    the next model, anything else is raised right away.
    """
    api_key = current_app.config.get("OPENAI_API_KEY")
    if not api_key:
        raise FoodParseError(NOT_CONFIGURED_MESSAGE)

    models = list(current_app.config.get("AI_FOOD_MODELS") or [])
    if not models:
        raise FoodParseError(NO_MODELS_MESSAGE)

    prompt = build_food_prompt(
        raw_text,
        history=history,
        reference_lines=reference_lines,
        language=current_app.config.get("AI_FOOD_LANGUAGE") or "Portuguese (PT-BR)",
    )
    client = OpenAI(api_key=api_key, base_url=current_app.config.get("OPENAI_BASE_URL"))

    last_error = None
    for model in models:
        try:
            output_text = _generate_text(client, model, prompt)
        except Exception as exc:
            if not is_quota_error(exc):
                raise
            last_error = exc
            current_app.logger.warning("Quota exceeded for %s, trying next model", model)
            continue

        parsed = _extract_json_object(output_text)
        if parsed is None:
            current_app.logger.warning("No JSON object in %s output: %.200s", model, output_text)
            raise FoodParseError(NO_JSON_MESSAGE)
        meals = normalize_meals(parsed)
        if not meals:
            current_app.logger.warning("No usable meals in %s output: %.200s", model, output_text)
            raise FoodParseError(NO_JSON_MESSAGE)
        return {"meals": meals, "model": model}

    raise AIQuotaExceededError(QUOTA_EXHAUSTED_MESSAGE) from last_error
