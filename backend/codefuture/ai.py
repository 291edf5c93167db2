"""Client for the generative-text service.

The service speaks the OpenRouter chat-completions protocol: a list of
`{role, content}` messages in, one assistant message out. Every call is
a single synchronous request with the configured timeout; failures are
raised as `UpstreamError` and never retried.
"""

import logging
from typing import List, Optional, Sequence

import httpx

from .errors import UpstreamError

logger = logging.getLogger("codefuture.ai")

PERSONA_INSTRUCTIONS = {
    "kid": "You are a friendly and visual coding tutor for a visual learner. Use simple analogies and keep explanations short.",
    "doctor_engineer": "You are a solution-focused technical consultant for a domain expert. Focus on practical automation.",
    "professional": "You are a senior developer mentor. Focus on best practices and industry-standard tools.",
}
DEFAULT_INSTRUCTION = "You are a helpful and patient coding tutor."

CURRICULUM_SHAPE = (
    '{"title": "...", "description": "...", "language": "python or javascript", '
    '"lessons": [{"id": "1", "title": "...", "content": "...", "initialCode": "..."}]}'
)


def system_instruction(persona: str) -> str:
    return PERSONA_INSTRUCTIONS.get(persona, DEFAULT_INSTRUCTION)


def extract_json(content: str) -> str:
    """Strip a surrounding markdown code fence (```json ... ```) if present."""
    text = content.strip()
    if not text.startswith("```"):
        return content
    first_newline = text.find("\n")
    if first_newline == -1:
        return content
    body = text[first_newline + 1:]
    closing = body.rfind("```")
    if closing != -1:
        body = body[:closing]
    return body.strip()


class AIClient:
    def __init__(self, api_key: str, base_url: str, model: str, timeout_seconds: float = 60.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport)

    @classmethod
    def from_settings(cls, settings) -> "AIClient":
        return cls(settings.AI_API_KEY, settings.AI_BASE_URL, settings.AI_MODEL, settings.AI_TIMEOUT_SECONDS)

    def close(self):
        self._client.close()

    def complete(self, messages: List[dict]) -> str:
        """Send `messages` and return the first choice's text."""
        if not self.api_key:
            raise UpstreamError("AI service is not configured")
        try:
            response = self._client.post(
                self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    "HTTP-Referer": "http://localhost:5173",
                    "X-Title": "Coding For Everyone",
                },
                json={"model": self.model, "messages": messages},
            )
            data = response.json()
        except httpx.HTTPError as exc:
            logger.warning("AI request failed: %s", exc)
            raise UpstreamError(f"API request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamError("failed to parse AI response") from exc
        if isinstance(data, dict) and data.get("error"):
            message = data["error"].get("message", "unknown error") if isinstance(data["error"], dict) else str(data["error"])
            raise UpstreamError(f"AI API error: {message}")
        if response.status_code >= 400:
            raise UpstreamError(f"AI API returned HTTP {response.status_code}")
        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise UpstreamError("no response from AI")
        return content

    def _ask(self, prompt: str) -> str:
        return self.complete([{"role": "user", "content": prompt}])

    def generate_lesson_plan(self, persona: str, goals: str) -> str:
        """Return a curriculum outline as serialized JSON text."""
        prompt = (
            f"Create a curriculum outline for a user with the persona: {persona}.\n"
            f'Their specific goal is: "{goals}".\n'
            f"Reply with ONLY a JSON object shaped like {CURRICULUM_SHAPE} with 3-5 lessons."
        )
        content = extract_json(self._ask(prompt))
        logger.info("generated lesson plan (%d chars)", len(content))
        return content

    def generate_full_roadmap(self, role: str, experience: str, goal: str, other: str) -> str:
        prompt = (
            f"Create a learning roadmap for a {role} with {experience} experience.\n"
            f'Their goal is: "{goal}". Additional context: "{other}".\n'
            f"Reply with ONLY a JSON object shaped like {CURRICULUM_SHAPE}."
        )
        content = extract_json(self._ask(prompt))
        logger.info("generated roadmap (%d chars)", len(content))
        return content

    def chat(self, persona: str, current_code: str, message: str, history: Sequence) -> str:
        messages = [{"role": "system", "content": system_instruction(persona)}]
        for item in history:
            messages.append({"role": item.role, "content": item.text})
        messages.append({
            "role": "user",
            "content": f"Current Code in Editor:\n```\n{current_code}\n```\n\nUser Message: {message}",
        })
        return self.complete(messages)

    def execute_code(self, code: str, language: str) -> str:
        """Ask the model to act as an interpreter and return only stdout."""
        prompt = (
            f"Act as a {language} interpreter. Execute the following code and return ONLY the output "
            f"(stdout), or the error message the interpreter would print.\n\nCode:\n{code}"
        )
        return self._ask(prompt)

    def generate_email_response(self, first_name: str, message: str) -> str:
        prompt = (
            f"Draft a short, friendly support reply to {first_name}, who wrote:\n{message}\n"
            "Reply with the email body only."
        )
        return self._ask(prompt)
