"""Maps a free-form provider answer onto an OracleOutcome."""

from src.pm_common.enums import OracleOutcome

_TRUE_WORDS = frozenset({"true", "yes"})
_FALSE_WORDS = frozenset({"false", "no"})
_STRIP_CHARS = " \t\r\n\"'`"


def normalize_answer(raw: str) -> str:
    """Lowercase, strip surrounding whitespace and quotes and one trailing period."""
    text = raw.strip(_STRIP_CHARS).lower()
    if text.endswith("."):
        text = text[:-1]
    return text.strip(_STRIP_CHARS)


def parse_outcome(raw: str | None) -> OracleOutcome:
    """true/yes -> TRUE, false/no -> FALSE, anything else -> INCONCLUSIVE. Never raises."""
    if not raw:
        return OracleOutcome.INCONCLUSIVE
    text = normalize_answer(raw)
    if text in _TRUE_WORDS:
        return OracleOutcome.TRUE
    if text in _FALSE_WORDS:
        return OracleOutcome.FALSE
    return OracleOutcome.INCONCLUSIVE
