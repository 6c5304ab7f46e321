"""
Model alias registry.

Maps friendly model names (e.g. "claude-sonnet-4.5") to the concrete
model id and provider each tool expects. Custom aliases from the
``models`` section of the config file take precedence over the
built-in table.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Provider(Enum):
    """Model provider."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    CURSOR = "cursor"
    OTHER = "other"


@dataclass(frozen=True)
class ModelDefinition:
    """A concrete model behind an alias."""

    id: str
    provider: Provider = Provider.OTHER

    @classmethod
    def from_dict(cls, data: dict) -> "ModelDefinition":
        """Create from a config mapping like {id: ..., provider: ...}.

        Raises:
            ValueError: If id is missing or provider is unknown
        """
        model_id = data.get("id")
        if not model_id or not isinstance(model_id, str):
            raise ValueError("model definition requires a string 'id'")
        provider = data.get("provider", Provider.OTHER.value)
        try:
            return cls(id=model_id, provider=Provider(provider))
        except ValueError:
            valid = ", ".join(p.value for p in Provider)
            raise ValueError(f"unknown provider {provider!r} (expected one of: {valid})")

    def to_dict(self) -> dict:
        return {"id": self.id, "provider": self.provider.value}


DEFAULT_MODELS: dict[str, ModelDefinition] = {
    # Anthropic
    "claude-opus-4.5": ModelDefinition("claude-opus-4-5", Provider.ANTHROPIC),
    "claude-sonnet-4.5": ModelDefinition("claude-sonnet-4-5", Provider.ANTHROPIC),
    "claude-haiku-4.5": ModelDefinition("claude-haiku-4-5", Provider.ANTHROPIC),
    # OpenAI
    "gpt-5.2": ModelDefinition("gpt-5.2", Provider.OPENAI),
    "gpt-5.2-codex": ModelDefinition("gpt-5.2-codex", Provider.OPENAI),
    "gpt-5.1-codex-max": ModelDefinition("gpt-5.1-codex-max", Provider.OPENAI),
    "gpt-5.1-codex": ModelDefinition("gpt-5.1-codex", Provider.OPENAI),
    "gpt-5.1-codex-mini": ModelDefinition("gpt-5.1-codex-mini", Provider.OPENAI),
    "gpt-5": ModelDefinition("gpt-5", Provider.OPENAI),
    "gpt-5-mini": ModelDefinition("gpt-5-mini", Provider.OPENAI),
    "gpt-5-nano": ModelDefinition("gpt-5-nano", Provider.OPENAI),
    # Google
    "gemini-3-pro": ModelDefinition("gemini-3.0-pro", Provider.GOOGLE),
    "gemini-3-flash": ModelDefinition("gemini-3.0-flash", Provider.GOOGLE),
    "gemini-2.5-pro": ModelDefinition("gemini-2.5-pro", Provider.GOOGLE),
    "gemini-2.5-flash": ModelDefinition("gemini-2.5-flash", Provider.GOOGLE),
    "gemini-2.5-flash-lite": ModelDefinition("gemini-2.5-flash-lite", Provider.GOOGLE),
    # Cursor
    "composer-1": ModelDefinition("composer-1", Provider.CURSOR),
}


def resolve_model(
    name: str,
    custom_models: Optional[dict[str, ModelDefinition]] = None,
) -> Optional[ModelDefinition]:
    """Resolve a model name to its definition.

    Order: custom aliases, built-in aliases, then any name that looks
    like a full id (contains "/" or "-") is taken literally.

    Returns:
        ModelDefinition, or None if the name is unknown
    """
    if custom_models and name in custom_models:
        return custom_models[name]
    if name in DEFAULT_MODELS:
        return DEFAULT_MODELS[name]
    if "/" in name or "-" in name:
        return ModelDefinition(id=name, provider=Provider.OTHER)
    return None


def format_model_for_tool(
    name: str,
    tool: str,
    custom_models: Optional[dict[str, ModelDefinition]] = None,
) -> str:
    """Format a model name the way a tool's CLI expects it.

    opencode takes "provider/id"; the other tools take the bare id.
    Unknown names are passed through unchanged.
    """
    model = resolve_model(name, custom_models)
    if model is None:
        return name
    if tool == "opencode":
        # literal ids keep whatever provider prefix they already carry
        if model.provider is Provider.OTHER:
            return model.id
        return f"{model.provider.value}/{model.id}"
    return model.id


def get_available_models(custom_models: Optional[dict[str, ModelDefinition]] = None) -> list[str]:
    """All alias names (built-in and custom), sorted."""
    names = set(DEFAULT_MODELS)
    if custom_models:
        names.update(custom_models)
    return sorted(names)
