import pytest

from schemas import OCRResult


class FakeModel:
    """Records (template name, validated inputs) and replays canned outputs."""

    def __init__(self, outputs=None, error=None):
        self.outputs = outputs or {}
        self.error = error
        self.calls = []

    def generate(self, template, inputs):
        self.calls.append((template.name, template.validate_inputs(inputs)))
        if self.error is not None:
            raise self.error
        return template.output_model(**self.outputs[template.name])


class FakeOCR:
    def __init__(self, latex="\\frac{1}{2}x + 3 = 5"):
        self.latex = latex
        self.calls = []

    def extract(self, image):
        self.calls.append(image)
        return OCRResult(latex=self.latex)


@pytest.fixture
def model():
    return FakeModel(outputs={
        "solve_math_problem": {"solution": "Step 1: Subtract 3..."},
        "answer_follow_up_question": {"answer": "Because..."},
    })


@pytest.fixture
def ocr():
    return FakeOCR()
