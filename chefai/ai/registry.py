"""
Prompt Template Registry.

A template is a typed descriptor: an input model, an output model, a prompt
string with `{placeholders}` bound to input fields, and the generation
parameters sent to the backend. Placeholders are checked against the input
model when the template is registered, so a typo in a prompt fails at import
time instead of on a user request.
"""
from dataclasses import dataclass, field
from enum import Enum
from string import Formatter
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chefai.ai.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


class TemplateKind(str, Enum):
    """What the backend is asked to produce."""
    TEXT = "text"
    IMAGE = "image"
    SPEECH = "speech"


class HarmCategory(str, Enum):
    HATE_SPEECH = "HARM_CATEGORY_HATE_SPEECH"
    DANGEROUS_CONTENT = "HARM_CATEGORY_DANGEROUS_CONTENT"
    HARASSMENT = "HARM_CATEGORY_HARASSMENT"
    SEXUALLY_EXPLICIT = "HARM_CATEGORY_SEXUALLY_EXPLICIT"


class BlockThreshold(str, Enum):
    BLOCK_NONE = "BLOCK_NONE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"


@dataclass(frozen=True)
class SafetySetting:
    category: HarmCategory
    threshold: BlockThreshold

    def to_config(self) -> Dict[str, str]:
        return {"category": self.category.value, "threshold": self.threshold.value}


# Thresholds shared by the recipe, meal plan and shopping list prompts.
STANDARD_SAFETY: Tuple[SafetySetting, ...] = (
    SafetySetting(HarmCategory.HATE_SPEECH, BlockThreshold.BLOCK_ONLY_HIGH),
    SafetySetting(HarmCategory.DANGEROUS_CONTENT, BlockThreshold.BLOCK_NONE),
    SafetySetting(HarmCategory.HARASSMENT, BlockThreshold.BLOCK_MEDIUM_AND_ABOVE),
    SafetySetting(HarmCategory.SEXUALLY_EXPLICIT, BlockThreshold.BLOCK_LOW_AND_ABOVE),
)

PERMISSIVE_SAFETY: Tuple[SafetySetting, ...] = tuple(
    SafetySetting(category, BlockThreshold.BLOCK_NONE) for category in HarmCategory
)


def validate_payload(model: Type[M], payload: Any) -> M:
    """
    Validate a payload (dict or model instance) against a pydantic model.

    Raises:
        ValidationError naming the first offending field
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error.get("loc", ()))
        raise ValidationError(location or model.__name__, error["msg"]) from exc


def _placeholder_roots(template: str) -> Set[str]:
    roots = set()
    for _, field_name, _, _ in Formatter().parse(template):
        if field_name is None:
            continue
        root = field_name.split(".", 1)[0].split("[", 1)[0]
        if not root:
            raise ValueError(f"Positional placeholder in template: {template[:40]!r}")
        roots.add(root)
    return roots


@dataclass(frozen=True)
class PromptTemplate:
    """
    A named, schema-typed prompt definition.

    `context` derives extra render values (formatted lists, optional lines)
    from the validated input; every key it returns must be declared in
    `context_keys`.
    """
    name: str
    kind: TemplateKind
    input_model: Type[BaseModel]
    template: str
    output_model: Optional[Type[BaseModel]] = None
    context: Optional[Callable[[Any], Mapping[str, Any]]] = None
    context_keys: Tuple[str, ...] = ()
    temperature: Optional[float] = None
    safety_settings: Tuple[SafetySetting, ...] = ()
    model: Optional[str] = None
    extra_config: Mapping[str, Any] = field(default_factory=dict)

    def check(self) -> None:
        """Check the descriptor is internally consistent. Raises ValueError."""
        if not self.name:
            raise ValueError("Template name must not be empty")
        if not (isinstance(self.input_model, type) and issubclass(self.input_model, BaseModel)):
            raise ValueError(f"{self.name}: input_model must be a pydantic model")
        if self.output_model is not None and self.kind is not TemplateKind.TEXT:
            raise ValueError(f"{self.name}: only text templates declare an output model")
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"{self.name}: temperature must be between 0 and 2")
        if self.context_keys and self.context is None:
            raise ValueError(f"{self.name}: context_keys declared without a context function")

        known = set(self.input_model.model_fields) | set(self.context_keys)
        unknown = _placeholder_roots(self.template) - known
        if unknown:
            raise ValueError(
                f"{self.name}: placeholders not bound to the input shape: {sorted(unknown)}"
            )

    def validate(self, payload: Any) -> BaseModel:
        return validate_payload(self.input_model, payload)

    def render(self, data: BaseModel) -> str:
        """Substitute validated input values into the prompt."""
        values: Dict[str, Any] = {name: getattr(data, name) for name in self.input_model.model_fields}
        if self.context is not None:
            extra = dict(self.context(data))
            missing = set(self.context_keys) - set(extra)
            if missing:
                raise ValueError(f"{self.name}: context did not provide {sorted(missing)}")
            values.update(extra)
        return self.template.format_map(values)

    def generation_config(self) -> Dict[str, Any]:
        config: Dict[str, Any] = dict(self.extra_config)
        if self.temperature is not None:
            config["temperature"] = self.temperature
        if self.safety_settings:
            config["safety_settings"] = [s.to_config() for s in self.safety_settings]
        return config


class PromptRegistry:
    """Templates selected by name."""

    def __init__(self, templates: Iterable[PromptTemplate] = ()):
        self._templates: Dict[str, PromptTemplate] = {}
        for template in templates:
            self.register(template)

    def register(self, template: PromptTemplate) -> PromptTemplate:
        template.check()
        if template.name in self._templates:
            raise ValueError(f"Template already registered: {template.name}")
        self._templates[template.name] = template
        return template

    def get(self, name: str) -> PromptTemplate:
        try:
            return self._templates[name]
        except KeyError:
            raise KeyError(f"Unknown prompt template: {name}") from None

    def names(self) -> List[str]:
        return sorted(self._templates)

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def validate_input(self, name: str, payload: Any) -> BaseModel:
        """Validate caller input for a template. Raises ValidationError."""
        return self.get(name).validate(payload)

    def render(self, name: str, payload: Any) -> str:
        template = self.get(name)
        return template.render(template.validate(payload))
