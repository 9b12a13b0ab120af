"""
LLM-backed synthesis provider.

Turns a snapshot plus recent history into a prompt, asks the LLM for a
JSON object and validates it into an AISynthesis.
"""

import json
import re

from pydantic import ValidationError

from src.config import get_logger
from src.core.entities.snapshot import Snapshot
from src.core.entities.synthesis import AISynthesis, PulseHistoryEntry
from src.core.exceptions import LLMResponseError
from src.core.interfaces.llm import ILLMProvider
from src.core.interfaces.synthesis import ISynthesisProvider

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are the Nexus Pulse, the intelligence engine for a productivity RPG.
You receive a compressed snapshot of the player's data and must produce a concise, actionable synthesis.

Your task:
1. Analyze cross-domain patterns the player might not see themselves.
2. Detect burnout signals (declining energy with declining completions and dropping streaks).
3. Find correlations (e.g. focus sessions and quest completion, energy and habit consistency).
4. Celebrate genuine progress without false positivity.
5. Give ONE concrete, specific suggestion that connects multiple data points.

Rules:
- Be concise. Max 1-2 sentences per field.
- Be specific. Reference actual numbers, habit names, or patterns from the data.
- Do NOT be generic ("keep up the good work").
- If data is sparse (new player), acknowledge it and give a helpful onboarding tip.

Output ONLY valid JSON with these exact fields:
{
  "topInsight": "One sentence synthesizing the most important cross-domain observation.",
  "burnoutRisk": 0.0 to 1.0 (0 = energized and productive, 1 = severe burnout signals),
  "momentum": "rising" | "steady" | "declining",
  "suggestion": "One concrete, specific action the player should take right now.",
  "celebrationOpportunity": "A genuine win to celebrate, or null if nothing stands out."
}"""

HISTORY_INSTRUCTION = (
    "Compare with previous days to identify trends (improving, plateau, declining), "
    'e.g. "burnout risk dropped from 0.7 to 0.3, the lighter load is working".'
)


class LLMSynthesisProvider(ISynthesisProvider):
    """
    Synthesis provider backed by an ILLMProvider.

    Raises LLMError subclasses on transport failures and LLMResponseError
    when the reply has no usable JSON object.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def synthesize(
        self,
        snapshot: Snapshot,
        history: list[PulseHistoryEntry],
    ) -> AISynthesis:
        prompt = self.build_prompt(snapshot, history)
        response = await self.llm.generate(
            prompt,
            system_prompt=SYSTEM_PROMPT,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            json_mode=True,
        )
        synthesis = self.parse_response(response.text)
        logger.info(
            "synthesis_generated",
            model=response.model,
            momentum=synthesis.momentum.value,
            burnout_risk=synthesis.burnout_risk,
            history_days=len(history),
        )
        return synthesis

    @staticmethod
    def build_prompt(snapshot: Snapshot, history: list[PulseHistoryEntry]) -> str:
        """Render the snapshot and history lines into the user prompt."""
        parts = [
            "Player Snapshot:",
            json.dumps(snapshot.model_dump(mode="json"), indent=1),
        ]

        if history:
            parts.append("")
            parts.append("Historical Pulse Data (previous days):")
            for entry in history:
                s = entry.synthesis
                parts.append(
                    f'- {entry.day}: momentum={s.momentum.value}, '
                    f'burnout={s.burnout_risk}, insight="{s.top_insight}"'
                )
            parts.append("")
            parts.append(HISTORY_INSTRUCTION)

        return "\n".join(parts)

    @staticmethod
    def _extract_json_string(text: str) -> str | None:
        """
        Extract a JSON string from LLM response text.

        Candidates are the whole reply, a fenced block and the outermost
        brace span, in that order. The first that parses wins; when none
        parses the first candidate is returned so the caller reports the
        syntax error.
        """
        text = text.strip()
        candidates: list[str] = []

        if text.startswith("{"):
            candidates.append(text)

        fenced = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
        if fenced:
            candidates.append(fenced.group(1).strip())

        braced = re.search(r"\{[\s\S]*\}", text)
        if braced:
            candidates.append(braced.group(0))

        for candidate in candidates:
            try:
                json.loads(candidate)
            except ValueError:
                continue
            return candidate

        return candidates[0] if candidates else None

    @classmethod
    def parse_response(cls, text: str) -> AISynthesis:
        """
        Parse and validate a synthesis from raw model output.

        Raises:
            LLMResponseError: No JSON object, invalid JSON or missing fields
        """
        json_str = cls._extract_json_string(text)
        if not json_str:
            raise LLMResponseError("No JSON object found in response", text)

        try:
            raw_data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise LLMResponseError(f"Invalid JSON syntax: {e}", text) from e

        if not isinstance(raw_data, dict):
            raise LLMResponseError("Expected a JSON object", text)

        try:
            return AISynthesis.model_validate(raw_data)
        except ValidationError as e:
            fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
            raise LLMResponseError(f"Validation failed for: {fields}", text) from e
