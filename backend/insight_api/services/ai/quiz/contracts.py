"""Quiz contracts: a list of multiple-choice questions."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class QuizQuestion(BaseModel):
    question: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    answer: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def answer_is_an_option(self):
        if self.answer not in self.options:
            # Models sometimes answer with the option letter instead of its text.
            letters = "ABCDEFGH"
            key = self.answer.strip().rstrip(").").upper()
            if len(key) == 1 and key in letters and letters.index(key) < len(self.options):
                self.answer = self.options[letters.index(key)]
        return self
