"""
AI Service — Multi-provider content generation capability (OpenAI GPT, Anthropic Claude).

The orchestrator only sees the GenerationCapability interface; the LLM-backed
implementation is built once at startup (see app.dependencies) and can be
swapped for a deterministic fake in tests.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from openai import AsyncOpenAI
from anthropic import AsyncAnthropic

from app.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_QUALITY_SCORE = 75

# ── Prompt templates ──────────────────────────────────────────────────
# Placeholders are filled from the context the orchestrator builds; any
# placeholder without a value stays in the text as-is.

EMAIL_SUBJECT_PROMPT = """Write one email subject line for this marketing campaign.

Objective: {objective}
Audience persona: {persona_name}
Demographics: {demographics}
Pain points: {pain_points}
Goals: {goals}
Tone: {tone}
Keywords: {keywords}
Extra instructions: {custom_instructions}

The subject line should speak to the persona's pain points or goals, match the tone,
stay under 50 characters and avoid common spam-trigger words.
Reply with the subject line only, no quotes."""

EMAIL_BODY_PROMPT = """Write a marketing email for this campaign.

Campaign: {campaign_name}
Objective: {objective}
Audience persona: {persona_name}
About the persona: {persona_description}
Demographics: {demographics}
Values: {values}
Interests: {interests}
Pain points: {pain_points}
Goals: {goals}
Preferred channels: {preferred_channels}
Tone: {tone}
Keywords: {keywords}
Subject line: {subject_line}
Extra instructions: {custom_instructions}

Address the persona's pain points, offer value tied to their goals, keep the tone
consistent and end with a clear call to action. 200-400 words, structured as
greeting, body, call to action and closing."""

SOCIAL_POST_PROMPT = """Write a {platform} post for this marketing campaign.

Campaign: {campaign_name}
Objective: {objective}
Audience persona: {persona_name}
About the persona: {persona_description}
Demographics: {demographics}
Values: {values}
Interests: {interests}
Pain points: {pain_points}
Goals: {goals}
Tone: {tone}
Keywords: {keywords}
Extra instructions: {custom_instructions}

Length and style by platform:
- linkedin: professional and value-driven, 150-300 words
- facebook: conversational and community-focused, 100-200 words
- twitter: concise, under 280 characters
- instagram: visual and inspiring, 100-150 words
- youtube / tiktok: a short hook-first description, under 150 words

Include a clear call to action, then put 3-5 relevant hashtags on their own
line at the very end."""

AD_COPY_PROMPT = """Write ad copy for this campaign, to run on {platform}.

Campaign: {campaign_name}
Objective: {objective}
Audience persona: {persona_name}
About the persona: {persona_description}
Demographics: {demographics}
Pain points: {pain_points}
Goals: {goals}
Tone: {tone}
Keywords: {keywords}
Extra instructions: {custom_instructions}

Format:
Headline: (under 30 characters)
Description: (under 90 characters)
Call to action: (under 20 characters)"""

SCORING_PROMPT = """Rate this {content_type} content for the target persona on a 0-100 scale.

Content:
\"\"\"{content}\"\"\"

Target persona:
- Name: {name}
- Age range: {age_range}
- Primary channels: {channels}
- Key values: {values}

Criteria: relevance to the persona (25), clarity (20), engagement potential (20),
persuasiveness and call to action (20), tone fit (15).
Reply with a single integer between 0 and 100."""

# kind -> (system prompt, user template, max_tokens)
PROMPTS = {
    "email_subject": (
        "You are an email marketing copywriter who writes high-converting subject lines.",
        EMAIL_SUBJECT_PROMPT,
        100,
    ),
    "email_body": (
        "You are an email marketing copywriter who writes personalized emails that convert.",
        EMAIL_BODY_PROMPT,
        800,
    ),
    "social_post": (
        "You are a social media marketing specialist who writes platform-native posts that drive engagement.",
        SOCIAL_POST_PROMPT,
        600,
    ),
    "ad_copy": (
        "You are a digital advertising copywriter who maximizes click-through and conversion rates.",
        AD_COPY_PROMPT,
        300,
    ),
}


class _KeepMissing(dict):
    def __missing__(self, key):
        return "{" + key + "}"


def render_prompt(kind: str, context: dict) -> str:
    """Fill the user prompt for `kind` from context. Raises KeyError for unknown kinds."""
    _, template, _ = PROMPTS[kind]
    values = _KeepMissing({k: v for k, v in context.items() if v not in (None, "")})
    return template.format_map(values)


def parse_score(text: str) -> int:
    """First integer in the reply, clamped to 0..100; 0 when there is none."""
    match = re.search(r"-?\d+", text or "")
    score = int(match.group()) if match else 0
    return max(0, min(100, score))


def _parse_model_id(model_id: Optional[str], fallback_model: str) -> tuple[str, str]:
    """Parse 'provider:model' into (provider, model). Fallback to OpenAI config."""
    if model_id and ":" in model_id:
        p, m = model_id.split(":", 1)
        return (p.strip().lower(), m.strip())
    return ("openai", fallback_model)


class GenerationCapability(ABC):
    """External text generation used by the content orchestrator."""

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    async def generate(self, kind: str, context: dict) -> str:
        """Raw generated text for kind: email_subject, email_body, social_post or ad_copy."""

    @abstractmethod
    async def score(self, content: str, persona_summary: dict, content_type: str) -> int:
        """Quality score in 0..100. May raise; callers fall back to a default."""

    def status(self) -> dict:
        available = self.is_available()
        return {
            "available": available,
            "message": (
                "AI content generation service is available"
                if available
                else "AI service not configured. Please set OPENAI_API_KEY or ANTHROPIC_API_KEY."
            ),
        }


class AIService(GenerationCapability):
    """LLM-backed generation capability. Unconfigured providers report unavailable instead of raising."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
    ):
        settings = get_settings()
        self.provider, self.model = _parse_model_id(model_id or settings.generation_model_id, settings.openai_model)
        self.scoring_model = settings.scoring_model if self.provider == "openai" else self.model
        self._openai_client: Optional[AsyncOpenAI] = None
        self._anthropic_client: Optional[AsyncAnthropic] = None

        # Use passed keys, else env
        openai_key = openai_api_key or settings.openai_api_key
        anthropic_key = anthropic_api_key or settings.anthropic_api_key
        timeout = settings.generation_timeout_seconds

        if self.provider == "openai":
            if openai_key:
                self._openai_client = AsyncOpenAI(api_key=openai_key, timeout=timeout)
        elif self.provider == "anthropic":
            if anthropic_key:
                self._anthropic_client = AsyncAnthropic(api_key=anthropic_key, timeout=timeout)
        else:
            logger.warning(f"Unknown AI provider '{self.provider}', content generation disabled")
            return

        if not self.is_available():
            logger.warning(f"No API key for provider '{self.provider}', content generation disabled")

    def is_available(self) -> bool:
        return self._openai_client is not None or self._anthropic_client is not None

    def status(self) -> dict:
        data = super().status()
        data.update({"provider": self.provider, "model": self.model})
        return data

    async def _completion(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: int = 800,
        model: Optional[str] = None,
    ) -> str:
        """Call the appropriate provider's completion API."""
        model = model or self.model
        if self.provider == "openai":
            response = await self._openai_client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            return response.choices[0].message.content or ""

        # Anthropic: convert messages to their format
        system = ""
        anthropic_messages = []
        for m in messages:
            role = m.get("role", "user")
            content = m.get("content", "")
            if role == "system":
                system += content + "\n\n" if content else ""
            else:
                anthropic_messages.append({"role": "user" if role == "user" else "assistant", "content": content})

        kwargs = dict(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=anthropic_messages,
        )
        if system:
            kwargs["system"] = system.strip()
        response = await self._anthropic_client.messages.create(**kwargs)
        if response.content and response.content[0].type == "text":
            return response.content[0].text
        return ""

    async def generate(self, kind: str, context: dict) -> str:
        if kind not in PROMPTS:
            raise ValueError(f"Unknown content kind: {kind}")
        system_prompt, _, max_tokens = PROMPTS[kind]
        if kind == "social_post" and context.get("platform") == "twitter":
            max_tokens = 150

        # creativity 0..10 maps onto temperature 0.2..1.2 (5 -> 0.7)
        creativity = context.get("creativity_level", 5)
        temperature = round(0.2 + creativity / 10, 2)

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": render_prompt(kind, context)},
        ]
        try:
            content = await self._completion(messages, temperature=temperature, max_tokens=max_tokens)
        except Exception as e:
            logger.error(f"AI generation failed ({kind}): {e}")
            raise
        return content.strip()

    async def score(self, content: str, persona_summary: dict, content_type: str) -> int:
        prompt = SCORING_PROMPT.format(
            content_type=content_type,
            content=content,
            name=persona_summary.get("name", "N/A"),
            age_range=persona_summary.get("ageRange", "N/A"),
            channels=", ".join(persona_summary.get("primaryChannels", [])) or "N/A",
            values=", ".join(persona_summary.get("keyValues", [])) or "N/A",
        )
        messages = [
            {"role": "system", "content": "You are a marketing content quality analyst. Score objectively."},
            {"role": "user", "content": prompt},
        ]
        reply = await self._completion(messages, temperature=0.3, max_tokens=10, model=self.scoring_model)
        return parse_score(reply)


def create_ai_service(
    model_id: Optional[str] = None,
    openai_api_key: Optional[str] = None,
    anthropic_api_key: Optional[str] = None,
) -> AIService:
    """Factory function to create the generation capability. Keys from env or passed (from Settings)."""
    return AIService(
        model_id=model_id,
        openai_api_key=openai_api_key,
        anthropic_api_key=anthropic_api_key,
    )
