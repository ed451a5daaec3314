# codeseek/infrastructure/answer_provider.py
# Vendor SDKs are imported lazily so the index works without either installed.

from codeseek.config import Settings
from codeseek.domain.interfaces import AnswerSynthesisPort


SYSTEM_PROMPT = (
    "You are a helpful coding assistant. Answer questions about the codebase "
    "using the provided code snippets. Be concise, reference specific files "
    "and functions when relevant, and say clearly when the context is missing "
    "something. Format answers in markdown."
)
TEMPERATURE = 0.3
MAX_TOKENS = 2048
NO_RESPONSE = "No response generated."


def build_user_message(query: str, context: str) -> str:
    return f"Code context:\n\n{context}\n\nQuestion: {query}"


class OpenAIAnswerProvider(AnswerSynthesisPort):
    """OpenAI chat completions via the ``openai`` SDK."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        try:
            import openai
        except ImportError as exc:
            raise ImportError(
                "The 'openai' SDK is not installed.\n"
                "  Install:  pip install openai\n"
                "  Or switch provider:  export CODESEEK_ANTHROPIC_KEY=..."
            ) from exc
        self.client = openai.OpenAI(api_key=api_key)
        self.model = model

    @property
    def provider_name(self) -> str:
        return f"OpenAI ({self.model})"

    def generate_answer(self, query: str, context: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            temperature=TEMPERATURE,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_message(query, context)},
            ],
        )
        return response.choices[0].message.content or NO_RESPONSE


class AnthropicAnswerProvider(AnswerSynthesisPort):
    """Anthropic messages API via the ``anthropic`` SDK."""

    def __init__(self, api_key: str, model: str = "claude-haiku-4-5"):
        try:
            import anthropic
        except ImportError as exc:
            raise ImportError(
                "The 'anthropic' SDK is not installed.\n"
                "  Install:  pip install anthropic\n"
                "  Or switch provider:  export CODESEEK_OPENAI_KEY=..."
            ) from exc
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model

    @property
    def provider_name(self) -> str:
        return f"Anthropic ({self.model})"

    def generate_answer(self, query: str, context: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_user_message(query, context)}],
        )
        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        return NO_RESPONSE


def create_answer_provider(settings: Settings) -> AnswerSynthesisPort:
    """
    OpenAI when its key is configured, else Anthropic.
    Raises RuntimeError when neither key is set.
    """
    if settings.openai_api_key:
        return OpenAIAnswerProvider(settings.openai_api_key, settings.openai_model)
    if settings.anthropic_api_key:
        return AnthropicAnswerProvider(settings.anthropic_api_key, settings.anthropic_model)
    raise RuntimeError(
        "No AI API key found. Please set either:\n"
        "  CODESEEK_OPENAI_KEY (for OpenAI)\n"
        "  CODESEEK_ANTHROPIC_KEY (for Anthropic)"
    )
