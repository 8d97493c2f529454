# prompts.py
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Type, Union

from pydantic import BaseModel, ValidationError

from errors import InvalidInputError
from schemas import FollowUpPromptInput, FollowUpResult, SolutionResult, SolvePromptInput


@dataclass(frozen=True)
class PromptTemplate:
    """A named instruction text with `{slot}` fields and a declared output schema."""

    name: str
    input_model: Type[BaseModel]
    output_model: Type[BaseModel]
    text: str

    def validate_inputs(self, inputs: Union[BaseModel, Mapping[str, Any]]) -> BaseModel:
        if isinstance(inputs, self.input_model):
            return inputs
        if isinstance(inputs, BaseModel):
            inputs = inputs.model_dump()
        try:
            return self.input_model.model_validate(inputs)
        except ValidationError as e:
            raise InvalidInputError(f"Bad input for prompt {self.name!r}: {e}")

    def render(self, inputs: Union[BaseModel, Mapping[str, Any]]) -> str:
        return self.text.format(**self.validate_inputs(inputs).model_dump())


SOLVE_TEMPLATE = PromptTemplate(
    name="solve_math_problem",
    input_model=SolvePromptInput,
    output_model=SolutionResult,
    text=(
        "Solve the following math problem clearly and display the solution step-by-step "
        "like a teacher on a whiteboard. Make it suitable for a student learning in class:\n\n"
        "{problem}"
    ),
)

FOLLOW_UP_TEMPLATE = PromptTemplate(
    name="answer_follow_up_question",
    input_model=FollowUpPromptInput,
    output_model=FollowUpResult,
    text=(
        "You are a helpful math tutor. A student has asked a follow-up question about a previous solution.\n\n"
        "Previous Solution: {previous_solution}\n\n"
        "Follow-up Question: {question}\n\n"
        "Answer the follow-up question clearly and concisely, providing further explanation if needed."
    ),
)

TEMPLATES: Dict[str, PromptTemplate] = {t.name: t for t in (SOLVE_TEMPLATE, FOLLOW_UP_TEMPLATE)}


def get_template(template: Union[PromptTemplate, str]) -> PromptTemplate:
    """Accept a template or its name."""
    if isinstance(template, PromptTemplate):
        return template
    try:
        return TEMPLATES[template]
    except KeyError:
        raise InvalidInputError(f"Unknown prompt template: {template!r}")
