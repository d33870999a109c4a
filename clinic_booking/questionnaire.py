"""Medical questionnaire form model."""
from dataclasses import dataclass
from typing import List, Optional

from clinic_booking.models import Questionnaire

CONTROL_SELECT = "select"
CONTROL_TEXT = "text"


@dataclass(frozen=True)
class QuestionControl:
    """Input to render for one question."""
    index: int
    label: str
    kind: str
    options: List[str]
    value: str


class QuestionnaireForm:
    """
    Holds a questionnaire and the patient's answers, keyed by position.

    Multiple-choice questions with choices render as a select, everything
    else as free text. Answers are not checked against the choices.
    """

    def __init__(self, questionnaire: Questionnaire):
        self.questionnaire = questionnaire

    @property
    def name(self) -> str:
        return self.questionnaire.name

    def controls(self) -> List[QuestionControl]:
        controls = []
        for index, question in enumerate(self.questionnaire.questions):
            if question.is_multiple_choice:
                kind, options = CONTROL_SELECT, question.choice_list
            else:
                kind, options = CONTROL_TEXT, []
            controls.append(QuestionControl(
                index=index,
                label=question.question_text,
                kind=kind,
                options=options,
                value=question.answer or "",
            ))
        return controls

    def set_answer(self, index: int, value: Optional[str]) -> None:
        """
        Record an answer.

        Raises:
            IndexError: No question at that position
        """
        questions = list(self.questionnaire.questions)
        if index < 0:
            raise IndexError(f"No question at position {index}")
        questions[index] = questions[index].model_copy(update={"answer": value})
        self.questionnaire = self.questionnaire.model_copy(update={"questions": questions})

    def to_payload(self) -> Questionnaire:
        return self.questionnaire
