"""Qualitative build notes from an OpenAI-compatible chat completions API.

The default endpoint is Mistral's, which speaks the same wire format as
OpenAI's, so the official ``openai`` client is pointed at it via
``AI_BASE_URL``. The model is told not to invent power numbers: it only adds
notes about compounding effects, heat and tune requirements. Any failure
yields ``{}`` and the arithmetic estimate stands on its own.
"""

import json
import time
from typing import Any, Sequence

from openai import AsyncOpenAI, OpenAIError

from modcalc.core.config import Settings, get_settings
from modcalc.core.logging import log_external_call, logger
from modcalc.models.modification import Modification
from modcalc.models.vehicle import Vehicle

SYSTEM_PROMPT = """You are a cautious automotive tuner.
Given car specs and a list of mods, provide conservative notes about compounding effects, heat, and tune requirements.
Return strictly JSON with keys: {notes: string[]}. Avoid inventing power numbers."""

MAX_NOTES = 8


def build_user_prompt(car: Vehicle, mods: Sequence[Modification]) -> str:
    """Describe the vehicle and mod list for the model."""
    lines = [f"Vehicle: {car.display_name or car.id}"]
    if car.drivetrain:
        lines.append(f"Drivetrain: {car.drivetrain}")
    if car.stock_hp:
        lines.append(f"Stock power: {car.stock_hp:.0f} hp")
    if car.stock_tq:
        lines.append(f"Stock torque: {car.stock_tq:.0f} lb-ft")
    if car.curb_weight_lbs:
        lines.append(f"Curb weight: {car.curb_weight_lbs:.0f} lb")

    if mods:
        lines.append("Mods:")
        for mod in mods:
            tune = " (usually needs a tune)" if mod.needs_tune else ""
            lines.append(f"- {mod.name} [{mod.category}]{tune}")
    else:
        lines.append("Mods: none selected yet")
    return "\n".join(lines)


def parse_notes(content: str | None) -> dict[str, list[str]]:
    """Extract ``{"notes": [...]}`` from the model output, or ``{}``."""
    if not content:
        return {}
    try:
        parsed = json.loads(content)
    except ValueError:
        return {}
    if not isinstance(parsed, dict) or not isinstance(parsed.get("notes"), list):
        return {}
    notes = [n.strip() for n in parsed["notes"] if isinstance(n, str) and n.strip()]
    return {"notes": notes[:MAX_NOTES]}


class AINotesService:
    """Generates advisory notes for a build; never raises."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or self._settings.ai_enabled

    def _get_client(self) -> AsyncOpenAI:
        """Lazy-load the async client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._settings.mistral_api_key,
                base_url=self._settings.ai_base_url,
                timeout=self._settings.ai_timeout,
                max_retries=0,
            )
        return self._client

    async def generate_notes(
        self, car: Vehicle, mods: Sequence[Modification]
    ) -> dict[str, Any]:
        """Ask the model for notes. Returns ``{}`` when disabled or on failure."""
        if not self.enabled:
            return {}

        start = time.time()
        try:
            resp = await self._get_client().chat.completions.create(
                model=self._settings.ai_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(car, mods)},
                ],
                temperature=self._settings.ai_temperature,
                max_tokens=self._settings.ai_max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            log_external_call("ai", "notes", False, (time.time() - start) * 1000)
            logger.warning(f"AI notes request failed: {e}")
            return {}

        duration_ms = (time.time() - start) * 1000
        content = resp.choices[0].message.content if resp.choices else None
        result = parse_notes(content)
        log_external_call("ai", "notes", bool(result), duration_ms)
        return result


# Lazy singleton
_service: AINotesService | None = None


def get_ai_notes_service() -> AINotesService:
    """Get or create the singleton notes service."""
    global _service
    if _service is None:
        _service = AINotesService()
    return _service


def needs_ai_notes(mods: Sequence[Modification]) -> bool:
    """Notes are requested for empty builds and builds with tune-dependent mods."""
    return not mods or any(m.needs_tune for m in mods)
