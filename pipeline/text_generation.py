"""
Daily Devotional - Text Generation

LLM prompts for every generated prose field:
- Positivity quote (affirmation mode), de-duplicated against recent quotes
- Devotional reflection (devotional mode)
- Camera script, meditation script, background video prompt (both modes)
"""

from typing import Optional

from core.constants import (
    ContentModeEnum,
    NarrativeFieldEnum,
    QUOTE_DEDUP_LIMIT,
    QUOTE_MAX_ATTEMPTS,
    QUOTE_SIMILARITY_THRESHOLD,
)
from core.llm import LLMClient
from core.logging import get_logger
from core.models import ContentRecord
from core.textnorm import find_similar_in_list

logger = get_logger(__name__)


# ============================================================================
# Prompts
# ============================================================================

QUOTE_PROMPT = '''Write an original motivational and inspirational message (1-3 sentences).

Draw thematic inspiration from the spirit of well-known motivational speakers:
personal power, courage, self-belief, purpose, resilience, gratitude, mindfulness.

Each day, pick a DIFFERENT theme. Rotate through topics like:
discipline, self-belief, gratitude, resilience, taking action, vulnerability,
purpose, mindfulness, letting go, courage, growth mindset, abundance,
self-love, perseverance, living in the present, relationships, forgiveness,
leadership, habit building, overcoming fear, inner peace, compassion.
{dedup_block}
Requirements:
- Must be ORIGINAL, do NOT copy or closely paraphrase any famous quotes
- Positive, uplifting, and encouraging tone
- Suitable for a daily inspirational app (NOT religious, this is about positivity)
- Simple and accessible language, not academic or preachy
- Return ONLY the quote text, no attribution, no quotation marks, no preamble'''

QUOTE_DEDUP_BLOCK = '''
IMPORTANT: The following quotes have ALREADY been used. Your new quote must be completely
DIFFERENT in both wording and theme from ALL of these:

{quotes}
'''

REFLECTION_PROMPT = '''Write a devotional reflection on this Bible verse:

{reference}: "{verse_text}"

Requirements:
- 4-6 sentences
- Warm, accessible, and encouraging tone
- Suitable for daily meditation and spiritual growth
- Connect the verse to everyday life experiences
- Offer practical encouragement or insight
- Do NOT start with "This verse..." and vary your openings
- Return ONLY the reflection text, no headings or labels'''

CAMERA_SCRIPT_PROMPT = '''Write a spoken camera script (~45 seconds, approximately 110-120 words).

Content: {context}

Focus: {focus}

Requirements:
- Conversational and warm tone, like a friend sharing an insight over coffee
- Written for SPEAKING, not reading, using natural speech patterns
- No stage directions, no "[pause]" markers, no formatting
- Start with a hook that grabs attention (question, surprising fact, or bold statement)
- End with a memorable closing thought
- Return ONLY the script text, nothing else'''

MEDITATION_SCRIPT_PROMPT = '''Write a guided meditation script (~1 minute, approximately 150-160 words).

Content: {context}

{theme}

Structure (follow this order):
1. OPENING BREATH: Gentle instruction to close eyes and take a deep breath
2. VISUALIZATION: Paint a calming mental image connected to the theme
3. AFFIRMATION: A positive declaration the listener can internalize
4. CLOSING: Gentle return to awareness with encouragement

Requirements:
- Slow, soothing, contemplative tone
- No section labels or headings in the output
- No stage directions like "[breathe]" or "[pause]"
- Use "you" to speak directly to the listener
- Return ONLY the meditation script text, nothing else'''

BACKGROUND_PROMPT_PROMPT = '''Write a detailed cinematic video prompt for an AI video generator.

The video should evoke the mood and theme of this content:
{context}

Requirements:
- Describe a beautiful, cinematic SCENERY shot (nature, landscapes, architecture, sky)
- ABSOLUTELY NO PEOPLE: no faces, no hands, no silhouettes, no crowds
- Include camera movement, lighting, color palette and mood
- Describe motion: flowing water, rustling leaves, drifting clouds, flickering candles
- 2-4 sentences, vivid and precise
- Suitable as a looping background video behind text overlay
- Return ONLY the video prompt, no preamble or explanation'''

CAMERA_FOCUS = {
    ContentModeEnum.DEVOTIONAL: (
        "Provide deeper context on this verse: historical background, what it meant "
        "to the original audience, and why it matters today."
    ),
    ContentModeEnum.AFFIRMATION: (
        "Expand on this quote: unpack its meaning, share a relatable scenario, and "
        "leave the viewer with an actionable takeaway."
    ),
}

MEDITATION_THEME = {
    ContentModeEnum.DEVOTIONAL: "Draw the meditation theme from the spiritual truth in this verse.",
    ContentModeEnum.AFFIRMATION: "Draw the meditation theme from the core message of this quote.",
}


def content_context(record: ContentRecord) -> str:
    """Describe a record's primary content for a prompt."""
    if record.mode == ContentModeEnum.DEVOTIONAL.value:
        return f'Bible verse: {record.verse_reference}: "{record.content_text}"'
    return f'Positivity quote: "{record.content_text}"'


def _clean_quote(text: str) -> str:
    return text.strip().strip('"“”').strip()


# ============================================================================
# Generator
# ============================================================================


class NarrativeGenerator:
    """
    Generates narrative fields and quotes through an OpenAI-compatible LLM.

    Every method raises RuntimeError when the LLM is not configured or
    returns nothing; callers treat that as a failed step.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient.from_config()

    async def generate(self, field: str, record: ContentRecord) -> str:
        """Generate the value of one narrative field for a record."""
        field = NarrativeFieldEnum(field)

        if field == NarrativeFieldEnum.DEVOTIONAL_REFLECTION:
            return await self.generate_devotional_reflection(
                record.verse_reference or "", record.content_text
            )
        if field == NarrativeFieldEnum.CAMERA_SCRIPT:
            return await self.generate_camera_script(record)
        if field == NarrativeFieldEnum.MEDITATION_SCRIPT:
            return await self.generate_meditation_script(record)
        return await self.generate_background_prompt(record)

    async def generate_devotional_reflection(self, reference: str, verse_text: str) -> str:
        prompt = REFLECTION_PROMPT.format(reference=reference, verse_text=verse_text)
        return await self.llm.complete(prompt)

    async def generate_camera_script(self, record: ContentRecord) -> str:
        mode = ContentModeEnum(record.mode)
        prompt = CAMERA_SCRIPT_PROMPT.format(
            context=content_context(record),
            focus=CAMERA_FOCUS[mode],
        )
        return await self.llm.complete(prompt)

    async def generate_meditation_script(self, record: ContentRecord) -> str:
        mode = ContentModeEnum(record.mode)
        prompt = MEDITATION_SCRIPT_PROMPT.format(
            context=content_context(record),
            theme=MEDITATION_THEME[mode],
        )
        return await self.llm.complete(prompt)

    async def generate_background_prompt(self, record: ContentRecord) -> str:
        prompt = BACKGROUND_PROMPT_PROMPT.format(context=content_context(record))
        return await self.llm.complete(prompt)

    async def generate_quote(self, recent_quotes: list[str]) -> str:
        """
        Generate a new positivity quote unlike the recent ones.

        The last QUOTE_DEDUP_LIMIT quotes are listed in the prompt. If the
        reply still resembles one of them it is re-requested, and after
        QUOTE_MAX_ATTEMPTS the last reply is accepted.
        """
        recent = [q for q in recent_quotes if q][-QUOTE_DEDUP_LIMIT:]
        dedup_block = ""
        if recent:
            numbered = "\n".join(f'{i}. "{q}"' for i, q in enumerate(recent, start=1))
            dedup_block = QUOTE_DEDUP_BLOCK.format(quotes=numbered)

        prompt = QUOTE_PROMPT.format(dedup_block=dedup_block)

        quote = ""
        for attempt in range(1, QUOTE_MAX_ATTEMPTS + 1):
            quote = _clean_quote(await self.llm.complete(prompt))
            if not quote:
                raise RuntimeError("LLM returned an empty quote")

            match = find_similar_in_list(quote, recent, threshold=QUOTE_SIMILARITY_THRESHOLD)
            if match is None:
                return quote

            idx, score = match
            logger.warning(
                f"Quote attempt {attempt} resembles a recent quote "
                f"(score {score:.0f}): {recent[idx][:60]}"
            )

        return quote
