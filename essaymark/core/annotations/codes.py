"""
Error-code catalogue offered by the rect editor.
"""
from dataclasses import dataclass
from typing import List, Optional

from .models import GradingMode


@dataclass(frozen=True)
class ErrorCode:
    code: str
    label: str
    mode: GradingMode
    description: str = ""


ERROR_CODES: List[ErrorCode] = [
    # Content
    ErrorCode("LOG", "Logic Issue", GradingMode.CONTENT, "Idea does not make sense."),
    ErrorCode("REF", "Unclear Reference", GradingMode.CONTENT, 'A word like "it" or "they" is not clear.'),
    ErrorCode("MP", "Major Problem", GradingMode.CONTENT, "Sentence is not understandable."),

    # Communicative achievement
    ErrorCode("FOR", "Formal", GradingMode.COMMUNICATIVE, "Language is too casual for the situation."),
    ErrorCode("WCH", "Word Choice", GradingMode.COMMUNICATIVE, "Word choice is not the best for the meaning."),
    ErrorCode("COL", "Collocation", GradingMode.COMMUNICATIVE, "Words that normally go together are used wrong."),
    ErrorCode("SIM", "Simplify", GradingMode.COMMUNICATIVE, "Sentence is too long or wordy."),
    ErrorCode("XTR", "Extra", GradingMode.COMMUNICATIVE, "There is an extra word you can remove."),
    ErrorCode("AWK", "Awkward", GradingMode.COMMUNICATIVE, "Sentence is grammatically correct but sounds awkward."),

    # Organisation
    ErrorCode("CON", "Connector", GradingMode.ORGANISATION, "A connector is missing or wrong."),
    ErrorCode("CD", "Cohesive Device", GradingMode.ORGANISATION, "Cohesive device is missing."),
    ErrorCode("SST", "Sentence Structure", GradingMode.ORGANISATION, "Sentence is incomplete or word order is wrong."),
    ErrorCode("RO", "Run-on Sentence", GradingMode.ORGANISATION, "Two or more sentences joined without proper punctuation."),
    ErrorCode("LIST", "Listing", GradingMode.ORGANISATION, "Items in a list are not parallel."),

    # Language
    ErrorCode("V", "Verb-related", GradingMode.LANGUAGE, "Wrong verb form or tense."),
    ErrorCode("SVA", "Subj-Verb Agreement", GradingMode.LANGUAGE, "Subject and verb do not match."),
    ErrorCode("PRO", "Pronouns", GradingMode.LANGUAGE, "Missing or wrong pronouns."),
    ErrorCode("WCL", "Word Class", GradingMode.LANGUAGE, "Wrong form of a word."),
    ErrorCode("WO", "Word Order", GradingMode.LANGUAGE, "Words are in the wrong order."),
    ErrorCode("AUX", "Auxiliary Verb", GradingMode.LANGUAGE, "Missing or wrong auxiliary/modal verb."),
    ErrorCode("ART", "Articles", GradingMode.LANGUAGE, "Wrong or missing article."),
    ErrorCode("PREP", "Prepositions", GradingMode.LANGUAGE, "Wrong preposition."),
    ErrorCode("COU", "Number", GradingMode.LANGUAGE, "Wrong noun form or wrong number."),
    ErrorCode("MIS", "Missing Word", GradingMode.LANGUAGE, "A word is missing."),
    ErrorCode("SP", "Spelling", GradingMode.LANGUAGE, "Spelling mistake."),
    ErrorCode("P", "Punctuation", GradingMode.LANGUAGE, "Punctuation error."),
    ErrorCode("US", "Usage", GradingMode.LANGUAGE, "Wrong word usage."),
]

# Short tag drawn on a rect that has no code
MODE_LABELS = {
    GradingMode.CONTENT: "C",
    GradingMode.COMMUNICATIVE: "CA",
    GradingMode.ORGANISATION: "O",
    GradingMode.LANGUAGE: "L",
    GradingMode.GENERAL: "G",
    GradingMode.SELECT: "S",
    GradingMode.STAMPER: "ST",
}

# RGB colours per mode
MODE_COLORS = {
    GradingMode.CONTENT: (16, 185, 129),
    GradingMode.COMMUNICATIVE: (245, 158, 11),
    GradingMode.ORGANISATION: (14, 165, 233),
    GradingMode.LANGUAGE: (244, 63, 94),
    GradingMode.GENERAL: (139, 92, 246),
    GradingMode.SELECT: (255, 255, 255),
    GradingMode.STAMPER: (190, 18, 60),
}

ELABORATION_COLOR = (52, 211, 153)


def codes_for_mode(mode: GradingMode) -> List[ErrorCode]:
    """Codes offered in the editor for a mode; ``general`` offers all of them."""
    if mode == GradingMode.GENERAL:
        return list(ERROR_CODES)
    return [c for c in ERROR_CODES if c.mode == mode]


def find_code(code: str) -> Optional[ErrorCode]:
    return next((c for c in ERROR_CODES if c.code == code), None)
